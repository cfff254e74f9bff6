"""proglog routing — fans each source stream out to its destinations.

A session has exactly three routes (input, output, error).  Every route's
first destination is the shared transcript; the rest are pass-through
endpoints owned by that route.  Sinks implement the ``BaseSink`` protocol
and turn raw reads into timestamped records on every destination.
"""
