from wharf.drivers.pm2.pm2 import Pm2Driver

__all__ = ["Pm2Driver"]
