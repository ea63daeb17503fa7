"""freezeassay CLI — Click commands with Rich output."""
