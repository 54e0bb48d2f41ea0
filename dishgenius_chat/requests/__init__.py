"""Request handling: inbound validation and chat turn orchestration.

Import directly from submodules; the orchestrator depends on the api
package, which in turn uses :mod:`.debug`.
"""
