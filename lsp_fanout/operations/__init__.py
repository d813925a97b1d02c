"""editor-level operations built on the dispatcher and aggregator

each module takes the FanoutManager as its first argument; use the
manager's methods rather than calling these directly.
"""
