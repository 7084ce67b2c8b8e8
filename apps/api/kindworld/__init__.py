"""KindWorld NGO verification and notification delivery API."""
