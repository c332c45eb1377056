"""Pure availability and slot logic, free of I/O."""
