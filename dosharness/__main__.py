"""Module entry point for the dosharness CLI."""

from .main import main

main()
