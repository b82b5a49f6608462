"""MCP adapter — FastMCP server, tools, resources, prompts, sampling.

The only layer that talks to MCP sessions; services never import from it.
"""
