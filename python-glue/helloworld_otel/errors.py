"""Greeter service errors"""


class GreeterError(Exception):
    """Base error for the greeter service"""
    pass


class ServerStartError(GreeterError):
    """The gRPC listener could not be started"""
    pass


class TelemetryConfigError(GreeterError):
    """Telemetry configuration names something that cannot be built"""
    pass


class ConfigError(GreeterError):
    """A configuration value cannot be parsed"""
    pass
