"""Core fetch machinery for agentquota: context, pipeline, executor, HTTP."""
