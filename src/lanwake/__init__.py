"""lanwake: Wake-on-LAN device registry, REST API and CLI."""

__version__ = "0.1.0"
