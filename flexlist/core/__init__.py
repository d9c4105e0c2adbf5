"""
Core utilities shared by every FlexList component: exceptions, logging,
validation, paths, settings and temporary-file staging.
"""
