"""Streamed chat reply ingestion: transport, framing, accumulation."""
