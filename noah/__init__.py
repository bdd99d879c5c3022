"""Noah conversational assistant backend."""
