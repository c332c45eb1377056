"""FitBook backend: trainer availability, slot resolution and booking lifecycle."""
