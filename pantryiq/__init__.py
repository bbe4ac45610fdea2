"""PantryIQ household pantry toolkit."""
