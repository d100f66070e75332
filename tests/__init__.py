# =============================================================================
# POLYGON CTF SCANNER - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     mock_chain.py   - Builders for fake logs, receipts and RPC clients
#     unit/           - Unit tests (ids, scanner, rpc, gamma, config, cli)
#
# Usage:
#   pytest                    # all tests
#   pytest tests/unit -k ids  # subset
#
# No test touches the network.
#
# =============================================================================
