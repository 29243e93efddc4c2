"""Demo benchmark program: ``python -m instrbench.demo``."""
