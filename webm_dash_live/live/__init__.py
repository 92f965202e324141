"""
Live segmenting pipeline: fragment catalog, manifest, scheduler and the
session object tying them to one container.
"""
