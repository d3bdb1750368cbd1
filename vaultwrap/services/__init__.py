"""Key Vault service wrappers."""
