"""Write-permission governance for the MySQL MCP Server.

Provides the pieces the query pipeline consults before touching the database:
- Statement classification (sqlglot-based, MySQL dialect)
- Target schema resolution (heuristic text scan)
- Per-category permissions with per-schema overrides
"""
