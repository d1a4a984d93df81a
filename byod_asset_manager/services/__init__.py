"""Domain operations. Each mutating call runs in one EntityStore unit of work."""
