"""Wrappers around the external tools the installer drives."""
