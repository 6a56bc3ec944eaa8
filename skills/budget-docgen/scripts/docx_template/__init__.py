"""Template mutation engine: run splicing, pattern rules, anchor regions, region synthesis."""
