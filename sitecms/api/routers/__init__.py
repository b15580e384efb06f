"""HTTP routers, one module per endpoint group."""
