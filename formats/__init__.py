"""
Codec formats: the tag registry, the run-length codec and the stream
adapters for delegated codecs.
"""
