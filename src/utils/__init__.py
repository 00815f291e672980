"""
Generic utility functions shared across modules.

Includes the clock abstraction and timestamp parsing/conversion helpers.
"""
