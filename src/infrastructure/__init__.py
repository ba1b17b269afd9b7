"""
Infrastructure Components

Foundational services shared by the funding arbitrage packages:
- logging: buffered logger with console and file backends
- exceptions: system-wide exception definitions
- networking: async HTTP transport
"""
