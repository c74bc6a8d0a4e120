"""Command line tools for inspecting and reformatting properties files."""
