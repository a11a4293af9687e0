"""External capabilities used by the pipeline: fetch, merge, mappings and remap."""
