"""
Live WebM container package.

Pure Python pieces that produce and slice a growing WebM file:

- ebml: EBML element IDs, VINT encoding/decoding and Cluster boundary scanning
- webm_muxer: append-only WebM writer (header, Clusters, SimpleBlocks)
- stream: the growing container file with its writer try-lock and read cursor
- cutter: initialization / media fragment cutting
"""
