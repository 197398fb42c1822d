"""Exceptions raised by the Tuxedo Touch client layer."""


class TuxedoError(Exception):
    """Base class for all Tuxedo client errors."""


class TransportError(TuxedoError):
    """The panel could not be reached (network or TLS failure)."""


class ProtocolError(TuxedoError):
    """The panel answered with a bad status or a malformed envelope."""


class DecryptionError(TuxedoError):
    """A ciphertext could not be decrypted with the configured key."""


class MalformedKeyError(TuxedoError):
    """The shared secret does not yield a 32 byte key and a 16 byte IV."""


class LoginTimeoutError(TuxedoError):
    """The portal never redirected back to the protected page after login."""


class StateIndeterminateError(TuxedoError):
    """A device card carries none of the known state markers."""


class UnknownStateError(TuxedoError):
    """The panel reported a status string that is not recognised."""

    def __init__(self, kind, value):
        super().__init__(f"Unknown {kind} state: {value!r}")
        self.kind = kind
        self.value = value
