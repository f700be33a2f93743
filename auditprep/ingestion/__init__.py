"""Block-explorer and JSON-RPC access, plus source-payload parsing."""
