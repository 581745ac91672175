"""HTTP surface for the incident map session."""
