"""JSON-RPC provider helpers for sandbox nodes."""
