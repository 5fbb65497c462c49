"""User profiles and formula-based energy calculations."""
