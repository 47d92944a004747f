"""Detection engine package.

Pattern registry, span extractor, confidence aggregation, the NLP adapter
and the pipeline that ties them together.
"""
