"""Built-in reducers, one module per family of methods."""
