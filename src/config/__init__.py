"""
Configuration loading and validation.

Provides immutable settings objects for the dataset download, the MQTT sink
and the transform pipeline, loaded from environment variables with upfront
validation.
"""
