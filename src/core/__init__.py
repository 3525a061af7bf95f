"""Core domain package for the challenge handler.

Core contains message types, envelope parsing, routing and response encoding
without any HTTP- or engine-specific code, keeping the protocol logic portable.
"""
