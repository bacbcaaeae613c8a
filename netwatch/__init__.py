"""Traffic rate statistics, input validation, security monitoring and host system metrics."""

__version__ = "0.2.0"
__all__ = ["security", "stats", "validation", "sysinfo", "sysmon"]