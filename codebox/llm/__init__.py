"""Assistant proxy client."""
