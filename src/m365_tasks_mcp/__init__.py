"""M365 Tasks MCP - Planner and To-Do tools for MCP clients."""
