"""Store adapters. ``memory`` has no dependencies; ``sqlalchemy`` needs the extra."""
