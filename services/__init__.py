"""Entity services built on the data core."""
