"""Error taxonomy for the suggestion pipeline."""


class SuggestError(Exception):
    """Base class for all suggestion pipeline errors."""


class ProviderError(SuggestError):
    """A completion backend could not produce candidates."""


class NetworkError(ProviderError):
    """Transport failure talking to the backend."""


class InvalidResponseError(ProviderError):
    """Backend answered with an error flag or a non-conforming body."""


class UnavailableError(ProviderError):
    """Backend kept reporting that the model is still loading."""


class ModelMissingError(ProviderError):
    """Model is not installed on the backend and could not be pulled."""


class AuthMissingError(ProviderError):
    """Backend needs an API credential and none is configured."""


class BuildError(SuggestError):
    """Prompt payload could not be built."""


class EncodingFailure(BuildError):
    """Payload contains values that cannot be encoded for the wire."""
