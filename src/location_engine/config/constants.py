"""Static constants: endpoint URLs, keyword lists, scoring weights."""

from __future__ import annotations

# Provider names used in persisted configuration
PROVIDER_IP = "ip"
PROVIDER_ON_DEVICE = "on_device"
PROVIDER_FIXED = "fixed"
PROVIDER_ADDRESS_GEOCODE = "address_geocode"

KNOWN_PROVIDERS = (
    PROVIDER_IP,
    PROVIDER_ON_DEVICE,
    PROVIDER_FIXED,
    PROVIDER_ADDRESS_GEOCODE,
)

DEFAULT_PROVIDER_PRIORITY = [PROVIDER_IP, PROVIDER_FIXED]

DEFAULT_STATIC_WEIGHTS = {
    PROVIDER_ON_DEVICE: 0.9,
    PROVIDER_ADDRESS_GEOCODE: 0.8,
    PROVIDER_FIXED: 0.7,
    PROVIDER_IP: 0.6,
}

# IP geolocation endpoints, in default fallback order
IP_ENDPOINT_URLS = {
    "ipapi.co": "https://ipapi.co/json/",
    "ipinfo.io": "https://ipinfo.io/json",
    "ip-api.com": "http://ip-api.com/json/?fields=status,message,lat,lon,city,regionName,country,isp,org,as,mobile,proxy,hosting",
    "ipwho.is": "https://ipwho.is/",
    "freeipapi.com": "https://freeipapi.com/api/json",
}
DEFAULT_IP_ENDPOINTS = ["ipapi.co", "ipinfo.io", "ip-api.com"]

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# Timeouts (seconds)
DEFAULT_IP_TIMEOUT = 10.0
DEFAULT_ON_DEVICE_TIMEOUT = 20.0
DEFAULT_GEOCODE_TIMEOUT = 15.0
DEFAULT_AVAILABILITY_TIMEOUT = 5.0
DEFAULT_CYCLE_DEADLINE = 45.0

DEFAULT_CACHE_TTL_SECONDS = 300

# Reliability scoring
RELIABILITY_W_SUCCESS = 0.5
RELIABILITY_W_LATENCY = 0.3
RELIABILITY_W_CONSISTENCY = 0.2
LATENCY_MS_PER_POINT = 50.0
CONSISTENCY_TOLERANCE_KM = 10.0
RESPONSE_TIME_HISTORY = 50

# Network detection
VPN_DISAGREEMENT_KM = 100.0

VPN_KEYWORDS = (
    "vpn",
    "nordvpn",
    "expressvpn",
    "surfshark",
    "mullvad",
    "private internet access",
    "protonvpn",
    "cyberghost",
    "windscribe",
    "tunnelbear",
    "ipvanish",
    "proxy",
    "tor exit",
)

HOSTING_KEYWORDS = (
    "hosting",
    "datacenter",
    "data center",
    "amazon",
    "aws",
    "google cloud",
    "microsoft",
    "azure",
    "digitalocean",
    "linode",
    "akamai",
    "ovh",
    "hetzner",
    "vultr",
    "choopa",
    "m247",
    "leaseweb",
    "cloudflare",
    "oracle cloud",
)

VPN_INTERFACE_PREFIXES = ("utun", "tun", "tap", "wg", "ppp", "ipsec", "gpd", "nordlynx")
MOBILE_INTERFACE_PREFIXES = ("pdp_ip", "wwan", "rmnet", "ccmni", "usb", "rndis")
WIFI_INTERFACE_PREFIXES = ("wl", "wlan", "wifi", "wi-fi", "airport")
ETHERNET_INTERFACE_PREFIXES = ("en", "eth", "ethernet")
IGNORED_INTERFACE_PREFIXES = ("lo", "docker", "br-", "veth", "vmnet", "bridge", "awdl", "llw", "anpi", "ap")

# On-device accuracy ladder, best first
ACCURACY_LADDER = (
    "best",
    "ten_meters",
    "hundred_meters",
    "kilometer",
    "three_kilometers",
)

CORELOCATION_ACCURACY_FLAGS = {
    "best": "kCLLocationAccuracyBest",
    "ten_meters": "kCLLocationAccuracyNearestTenMeters",
    "hundred_meters": "kCLLocationAccuracyHundredMeters",
    "kilometer": "kCLLocationAccuracyKilometer",
    "three_kilometers": "kCLLocationAccuracyThreeKilometers",
}

UNKNOWN_PLACE = "Unknown"
