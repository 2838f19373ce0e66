"""
scratchdb Adapter Test Suite

MemoryRowStore storage semantics and HttpRowStore over httpx.MockTransport.
"""
