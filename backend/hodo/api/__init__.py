"""HTTP routers for the Hodo backend."""
