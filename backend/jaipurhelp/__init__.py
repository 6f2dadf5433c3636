"""JaipurHelp backend: worker marketplace with metered contact disclosure."""
