"""Bundled configuration templates, deployed by ``rice.core.services.configs``."""
