"""Command-line interface for the Content Factory"""
