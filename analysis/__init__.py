"""Results analysis: narrative generation around the tally"""
