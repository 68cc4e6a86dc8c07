"""Core types for flightcache."""

from datetime import timedelta

# Duration type alias
Duration = str | int | timedelta  # "30s", "5m", "2h", "1d", milliseconds or timedelta
