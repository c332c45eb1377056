"""Service layer: business operations over repositories."""
