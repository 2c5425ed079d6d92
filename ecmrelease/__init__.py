"""Release tooling for k3s, RKE2 and related projects: GitHub releases, notes and version lookups."""

__version__ = "0.1.0"