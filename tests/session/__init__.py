"""
Session Tests Package

Editor session behaviour against a recording in-process transport.
"""
