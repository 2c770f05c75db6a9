"""
Agent engine: turns planned tool calls into human-paced edits of a workspace.

Key parts
---------
- actions:   One dataclass per kind of intent, built from planner tool calls
- state:     Action queue, cursor state, conversation, overlays, abort epoch
- motion:    Bezier cursor arcs and eased drags on a frame clock
- processor: Drains the queue one action at a time
- bridge:    Instruction -> planner -> queued actions
- runtime:   Hosts the asyncio loop in a worker thread for the GUI

Submodules are imported directly (``from agent_engine.processor import ...``);
the workspace package depends on ``agent_engine.transform``, so this package
keeps its import side-effect free.
"""
