"""
Adapters for the pipeline's external collaborators.

Dataset sources (OPSD HTTP download, local file) and message sinks (MQTT via
paho-mqtt, console) behind small Protocols so the core never touches I/O.
"""
