"""Hodo backend: accounts, tasks and unlock-code licensing."""
