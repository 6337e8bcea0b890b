"""HTTP surface for LLMGate."""
