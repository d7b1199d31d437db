"""FastAPI dependency injection for shared application state."""

from dpro_gateway.core.config import Settings
from dpro_gateway.net.session import DeviceSession
from dpro_gateway.net.supervisor import SessionSupervisor


class AppState:
    """Holds shared application state instances.

    Created during app startup and accessed via FastAPI dependencies.
    """

    def __init__(self) -> None:
        self.settings: Settings | None = None
        self.session: DeviceSession | None = None
        self.supervisor: SessionSupervisor | None = None


# Global app state singleton
app_state = AppState()


def get_session() -> DeviceSession:
    """Get the device session instance."""
    assert app_state.session is not None, "App not initialized"
    return app_state.session


def get_settings() -> Settings:
    """Get the settings instance."""
    assert app_state.settings is not None, "App not initialized"
    return app_state.settings
