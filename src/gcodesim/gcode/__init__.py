"""G-code reading: tokenizer, interpreter and diagnostics."""
