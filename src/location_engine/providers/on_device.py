"""On-device location provider wrapping the platform location service.

The provider never touches the device service unless the user has granted
consent. It separates three terminal outcomes (coordinates, permission
denied, timeout/unavailable) because the optimizer reacts to a consent
denial differently than to a transient failure.
"""

from __future__ import annotations

import asyncio
import json
import shutil
import time

from location_engine.config.constants import (
    ACCURACY_LADDER,
    CORELOCATION_ACCURACY_FLAGS,
    DEFAULT_AVAILABILITY_TIMEOUT,
    PROVIDER_ON_DEVICE,
)
from location_engine.exceptions import (
    AccuracyUnsupported,
    ConfigurationError,
    ConsentDenied,
    ProviderError,
    ProviderParseError,
    ProviderTimeout,
    ProviderUnavailable,
)
from location_engine.models.domain import ErrorKind, LocationMethod, LocationResult, Place
from location_engine.observability.logger import get_logger
from location_engine.protocols.provider import PlatformLocationService

logger = get_logger("on_device")

_DENIED_MARKERS = ("denied", "not authorized", "unauthorized", "kclerrordenied")
_UNSUPPORTED_ACCURACY_MARKERS = ("unsupported accuracy", "accuracy not supported")


class CommandLocationService:
    """Runs a location command (``CoreLocationCLI`` by default) that prints JSON.

    ``{accuracy}`` in the argument list is replaced with the CoreLocation
    accuracy constant for the requested level.
    """

    def __init__(self, command: list[str] | None = None) -> None:
        self._command = list(command or ["CoreLocationCLI", "--json"])

    async def authorization_status(self) -> str:
        if shutil.which(self._command[0]) is None:
            return "unavailable"
        # The command reports a denial only when asked for a fix
        return "not_determined"

    async def locate(self, accuracy: str, timeout: float) -> dict:
        flag = CORELOCATION_ACCURACY_FLAGS.get(accuracy, CORELOCATION_ACCURACY_FLAGS["best"])
        argv = [arg.replace("{accuracy}", flag) for arg in self._command]

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProviderUnavailable(f"location command unavailable: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout("timeout") from e
        finally:
            # Also reached on cancellation from an outer deadline or short-circuit
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        err_text = stderr.decode(errors="replace").strip().lower()
        if proc.returncode != 0:
            if any(m in err_text for m in _DENIED_MARKERS):
                raise ConsentDenied("location permission denied")
            if any(m in err_text for m in _UNSUPPORTED_ACCURACY_MARKERS):
                raise AccuracyUnsupported(f"accuracy '{accuracy}' not supported")
            raise ProviderUnavailable(
                f"location command exited with {proc.returncode}: {err_text or 'no output'}"
            )

        try:
            return json.loads(stdout.decode())
        except ValueError as e:
            raise ProviderParseError("location command printed invalid JSON") from e


class OnDeviceLocationProvider:
    method = LocationMethod.ON_DEVICE
    requires_user_consent = True

    def __init__(
        self,
        service: PlatformLocationService,
        consent_granted: bool,
        desired_accuracy: str = "best",
        name: str = PROVIDER_ON_DEVICE,
        availability_timeout: float = DEFAULT_AVAILABILITY_TIMEOUT,
    ) -> None:
        if desired_accuracy not in ACCURACY_LADDER:
            raise ConfigurationError(
                f"Unknown accuracy '{desired_accuracy}'. Choose one of: {', '.join(ACCURACY_LADDER)}"
            )
        self.name = name
        self._service = service
        self._consent_granted = consent_granted
        self._desired_accuracy = desired_accuracy
        self._availability_timeout = availability_timeout

    @property
    def consent_granted(self) -> bool:
        return self._consent_granted

    async def is_available(self) -> bool:
        if not self._consent_granted:
            return False
        try:
            status = await asyncio.wait_for(
                self._service.authorization_status(), timeout=self._availability_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("on_device_status_timeout")
            return False
        return status not in ("unavailable", "denied", "restricted")

    async def resolve(self, timeout: float) -> LocationResult:
        start = time.monotonic()
        if not self._consent_granted:
            return LocationResult.failure(
                self.method, "user consent not granted", ErrorKind.CONSENT_DENIED
            )

        try:
            result = await asyncio.wait_for(self._locate_with_fallback(timeout), timeout=timeout)
        except asyncio.TimeoutError:
            result = LocationResult.failure(self.method, "timeout", ErrorKind.TIMEOUT)
        except ProviderError as e:
            result = LocationResult.failure(self.method, str(e), e.kind)

        if not result.success:
            logger.info("on_device_failed", kind=result.error_kind.value, error=result.error)
        return result.with_timing((time.monotonic() - start) * 1000)

    async def _locate_with_fallback(self, timeout: float) -> LocationResult:
        ladder = ACCURACY_LADDER[ACCURACY_LADDER.index(self._desired_accuracy):]
        for accuracy in ladder:
            try:
                payload = await self._service.locate(accuracy, timeout)
            except AccuracyUnsupported:
                logger.info("on_device_accuracy_fallback", unsupported=accuracy)
                continue
            return self._parse(payload, accuracy)
        raise ProviderUnavailable("no supported accuracy level")

    def _parse(self, payload: dict, accuracy: str) -> LocationResult:
        try:
            lat = float(payload["latitude"])
            lon = float(payload["longitude"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderParseError("device location missing coordinates") from e

        accuracy_m = payload.get("h_accuracy", payload.get("accuracy", 0.0))
        try:
            accuracy_m = float(accuracy_m or 0.0)
        except (TypeError, ValueError):
            accuracy_m = 0.0

        try:
            return LocationResult.ok(
                self.method,
                lat,
                lon,
                accuracy_meters=accuracy_m,
                place=Place.from_parts(
                    payload.get("locality") or payload.get("city"),
                    payload.get("administrativeArea") or payload.get("region"),
                    payload.get("country"),
                ),
                source=f"device:{accuracy}",
            )
        except ValueError as e:
            raise ProviderParseError(f"device location out of range: {e}") from e
