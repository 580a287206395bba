class AuthenticationError(Exception):
    pass


class GraphAPIError(Exception):
    pass


class RateLimitError(GraphAPIError):
    pass


class ResourceNotFoundError(GraphAPIError):
    pass


class PermissionDeniedError(GraphAPIError):
    pass


class GraphResponseParseError(GraphAPIError):
    pass


class ConfigurationError(Exception):
    pass


class DefaultListNotFoundError(ConfigurationError):
    pass


class ClientGenerationError(Exception):
    pass
