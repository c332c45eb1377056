"""HTTP routers for the FitBook API."""
