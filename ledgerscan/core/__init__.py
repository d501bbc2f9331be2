"""Core Application Layer: Orchestrates use cases and application logic.

Connects the domain layer with the infrastructure layer through interfaces.
Contains the run context, the batch scheduler, the scan pipelines and the
command handler.
"""
