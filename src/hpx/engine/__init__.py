"""XDP source generation and compilation."""
