"""
Custom Exception Classes for the Overlay Gateway

Hierarchical exception structure for overlay translation and patching.
Translator errors never carry secret material in their messages.
"""


class OverlayError(Exception):
    """Base exception for all overlay gateway errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(OverlayError):
    """Settings and credential loading errors"""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(f"Config Error: {message}", recoverable)


class StoreError(OverlayError):
    """Metadata store read/write errors"""

    def __init__(self, message: str, bucket: str | None = None, key: str | None = None):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Store Error: {message}", recoverable=True)


class TranslationError(OverlayError):
    """Overlay section could not be translated into live configuration"""

    def __init__(self, message: str, section: str | None = None):
        self.section = section
        super().__init__(message, recoverable=True)


class ValidationError(TranslationError):
    """Overlay section is missing a required field or is malformed"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        location: str | None = None,
        section: str | None = None,
    ):
        self.field = field
        self.location = location
        super().__init__(f"Validation Error: {message}", section)


class UnsupportedBackendError(TranslationError):
    """Location uses a locationType with no registered translator"""

    def __init__(self, location_type: str | None, location: str | None = None):
        self.location_type = location_type
        self.location = location
        super().__init__(
            f"Unsupported backend: locationType {location_type!r} "
            f"for location {location!r}",
            section="locations",
        )


class DecryptionError(TranslationError):
    """Secret could not be decrypted with the configured private key"""

    def __init__(self, message: str = "unable to decrypt secret", section: str | None = None):
        self.reason = message
        super().__init__(f"Decryption Error: {message}", section)
