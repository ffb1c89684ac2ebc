"""psdevbot - relays GitHub webhook events into Pokémon Showdown rooms."""
__version__ = "0.6.0"
