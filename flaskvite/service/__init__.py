"""systemd integration: unit installation and the interactive manager."""

from flaskvite.service.installer import ServiceInstaller
from flaskvite.service.manager import MenuCommand, ServiceManager
from flaskvite.service.systemd import ServiceState, SystemdSupervisor

__all__ = [
    "MenuCommand",
    "ServiceInstaller",
    "ServiceManager",
    "ServiceState",
    "SystemdSupervisor",
]
