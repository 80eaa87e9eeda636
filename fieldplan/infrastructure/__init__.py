"""Infrastructure helpers: logging, LLM client, HTTP client."""
