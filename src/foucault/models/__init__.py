"""Domain, database and wire models for Foucault."""
