"""
Token Launch Wizard Package Initialization

This package provides the configuration core of a token launch wizard built on the Model
Context Protocol (MCP). It collects the economics of a new token across a series of steps,
validates every step against profile-specific rules, quotes the launch fees, and converts
human-entered percentages into exact base-unit amounts for the token creation service.

The package includes:
- Precision-safe numeric conversions for token amounts
- Step validation rules keyed by step and profile
- Fee schedule and review summary
- The wizard state machine and its request transformer
- An HTTP client for the token creation service
- Custom error handling
- MCP server implementation for easy integration
"""
