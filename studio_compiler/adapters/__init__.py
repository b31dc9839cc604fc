"""
Adapters for external systems.

- compiler_client : async HTTP client for the Solidity compiler service
"""
