"""
Core wizard engine.

This package contains the primary logic. The `PipelineController` is the
state machine driving the wizard; it hands long-running work to the
`CommandDispatcher`, whose download command delegates to the
`AssetFetcher`.
"""
