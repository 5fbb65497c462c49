"""Daily logs, weight trend and adaptive metabolic estimation."""
