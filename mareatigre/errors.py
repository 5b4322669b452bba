"""
Error taxonomy for the mareatigre pipeline.

Every error carries a Spanish `message` that the service layer hands to the
client as `{"error": message}`.
"""

from __future__ import annotations


class MareaTigreError(Exception):
    """Base class for pipeline failures surfaced at the service boundary."""

    default_message = "Servicio temporalmente no disponible"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UpstreamUnavailable(MareaTigreError):
    """Network failure, timeout or non-2xx response from a source."""

    default_message = "No hay datos disponibles"


class SecurityBlocked(MareaTigreError):
    """Upstream answered with a challenge page instead of data."""

    default_message = "Bloqueo de seguridad"


class UnexpectedFormat(MareaTigreError):
    """Response does not have the expected envelope."""

    default_message = "Formato inesperado"


class ParseFailure(UnexpectedFormat):
    """Response has the envelope but its contents do not parse."""

    default_message = "Error parsing JSON"


class NoDataFound(MareaTigreError):
    """Well-formed response without the field we were looking for."""

    default_message = "No se encontraron datos"


class StorageFailure(MareaTigreError):
    """Lock or write failure in the record store."""

    default_message = "Error de almacenamiento"
