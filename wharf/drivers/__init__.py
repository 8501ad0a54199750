"""Process supervisor drivers."""

from wharf.drivers.base import SupervisorDriver, SupervisorError
from wharf.drivers.pm2 import Pm2Driver

__all__ = ["Pm2Driver", "SupervisorDriver", "SupervisorError"]
