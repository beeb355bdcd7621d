"""HTTP API for hydrology generation."""
