"""Agent identity and one-time-code authentication service."""
