"""Pad-i: a conversational assistant with a self-curated knowledge base."""
