"""Value types shared across Boostrole."""
