"""
Key models and key document parsing.

The raw document is decoded with pydantic; everything past the parser works
on immutable ``SigningKey`` / ``KeySnapshot`` values.
"""
