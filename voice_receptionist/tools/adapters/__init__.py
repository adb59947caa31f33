"""Provider-specific tool calling adapters."""
