"""
Main entry point for running the package as a module.

Usage:
    python -m webp_derivatives convert photo.jpg --metadata photo.json
    python -m webp_derivatives plan photo.jpg --size thumbnail:150x150:crop
"""

from .cli import main

if __name__ == "__main__":
    main()
