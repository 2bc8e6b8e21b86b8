"""
Generation stages: planning, content synthesis, rule enforcement,
enhancement/repair and the degraded-mode fallback factory.
"""
