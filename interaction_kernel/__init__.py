"""
Interaction Kernel

The stateful core behind the chat bot's interactive controls:
- Opaque, namespaced action tokens carried on buttons
- Role-category authorization
- Ticket persistence with an append-only status lifecycle
- Structured logging shared by every workflow
"""

__version__ = "0.1.0"
