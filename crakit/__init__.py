"""Helpers for full-stack web apps: views, Vite bundles, mail, ports, hook generation and dev tooling."""

__version__ = "0.1.0"