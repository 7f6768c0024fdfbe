"""Project-wide constants for Conduit."""  # noqa: D415

# ==============================================================================
# Execution Loop
# ==============================================================================

# Safety valve against runaway tool-use cycles. Reaching it is not an error.
MAX_ITERATIONS = 10

# ==============================================================================
# Message Normalization
# ==============================================================================

# Used when a vendor needs at least one user turn and there is nothing else.
EMPTY_CONVERSATION_SENTINEL = "Hello"

# Placeholder values used in structured-output templates, keyed by JSON type.
SCHEMA_PLACEHOLDERS: dict[str, str] = {
    "string": '"value"',
    "number": "0",
    "boolean": "true",
    "array": "[]",
    "object": "{}",
}
