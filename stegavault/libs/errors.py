import math


class StegoError(Exception):
    """Error base del códec: siempre aborta la operación completa"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(StegoError):
    """Sin elementos secretos o tipo de portador no soportado"""

    status_code = 400


class FormatError(StegoError):
    """Contenedor, sobre cifrado o portador mal formado"""

    status_code = 400


class CapacityError(StegoError):
    """El payload no cabe en el portador"""

    status_code = 400

    def __init__(self, required_bytes: int, available_bytes: int, message: str = None):
        self.required_bytes = required_bytes
        self.available_bytes = available_bytes
        if message is None:
            message = (
                f"Not enough capacity. Need {math.ceil(required_bytes / 1024)}KB, "
                f"have {math.ceil(available_bytes / 1024)}KB."
            )
        super().__init__(message)


class AuthError(StegoError):
    """Falta la contraseña o falló la verificación del tag GCM"""

    status_code = 401


class BusyError(StegoError):
    """El pool de workers está saturado"""

    status_code = 503
