"""olnode: account provisioning and live monitoring for 0L validator nodes."""

__version__ = "0.3.0"
