"""
Pure helpers shared by the pipeline stages.
"""
