"""Domain value objects shared by the engines and services."""
