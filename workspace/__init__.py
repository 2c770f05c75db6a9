"""
Workspace package: the scene graph the agent acts upon.

Key parts
---------
- scene:    SceneObject, the SceneGraph protocol and the in-memory Workspace
- geometry: centre-origin placement math shared by renderers and hit tests
- svg:      SVG path-data flattening and SVG document loading
- shapes:   factories for text, paths, vector graphics, images and placeholders
- render:   Pillow rasterizer used to capture the visible viewport
"""

from .scene import SceneGraph, SceneObject, Workspace

__all__ = ["SceneGraph", "SceneObject", "Workspace"]
