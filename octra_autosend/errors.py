class AutosendError(Exception):
    pass


class InvalidKeyMaterial(AutosendError):
    """Seed is not 32 bytes or not valid base64."""


class WalletLoadError(AutosendError):
    pass


class TargetLoadError(AutosendError):
    pass
