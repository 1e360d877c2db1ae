"""Core types, configuration, logging and errors shared across bottleledger."""
