"""Configuration, logging, errors and cryptographic helpers."""
