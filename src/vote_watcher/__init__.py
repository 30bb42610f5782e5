"""Validator vote watcher: exports the latest block height a validator precommitted."""
