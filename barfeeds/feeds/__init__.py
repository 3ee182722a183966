"""Concrete feeds: one state, one adapter and one run() coroutine each."""
