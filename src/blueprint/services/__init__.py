"""Generation pipeline services."""
