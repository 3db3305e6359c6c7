"""SAML 2.0 metadata, duration handling, identity-provider request processing and attributes."""

__version__ = "0.1.0"

__all__ = ["attributes", "duration", "flate", "identity_provider", "metadata"]