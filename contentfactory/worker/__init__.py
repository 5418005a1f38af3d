"""Background workers for the Content Factory"""
