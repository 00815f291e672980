"""
Download, parse and publish workflow.

Composes the pure transform stages with the dataset source and the message
sink under a fail-fast, sequential run contract.
"""
