"""Integration tests for the content sync engine.

These tests run real git in temporary repositories and drive the sync
service through the hosted Git client with only the HTTP session replaced.
"""
