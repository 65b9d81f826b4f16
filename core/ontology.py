"""
STACKBRIDGE ONTOLOGY - The Dictionary of the Stack Graph

If schemas.py is the Grammar (how we structure node and edge payloads),
ontology.py is the Dictionary (the words we can use).

This module defines:
- NodeKind: the closed set of stack graph node kinds
- Singleton ids: the fixed local ids of the root and jump-to nodes
- Display templates: the deterministic text form of every node kind

Key Principle: the kind of a node never changes after construction.
Flags (is_reference, is_definition, is_exported) refine a kind; they do not
introduce new kinds. An "exported scope" is a SCOPE node with is_exported set.
"""
from enum import Enum
from typing import Dict, Tuple


# =============================================================================
# ENUMS (The Vocabulary)
# =============================================================================

class NodeKind(str, Enum):
    """Kinds of nodes in a stack graph."""
    # Singletons (always present, never constructed by callers)
    ROOT = "root"
    JUMP_TO = "jump_to_scope"
    # Symbol stack manipulation
    PUSH_SYMBOL = "push_symbol"
    PUSH_SCOPED_SYMBOL = "push_scoped_symbol"
    POP_SYMBOL = "pop_symbol"
    POP_SCOPED_SYMBOL = "pop_scoped_symbol"
    # Scope stack manipulation
    DROP_SCOPES = "drop_scopes"
    SCOPE = "scope"


PUSH_KINDS = frozenset({NodeKind.PUSH_SYMBOL, NodeKind.PUSH_SCOPED_SYMBOL})
POP_KINDS = frozenset({NodeKind.POP_SYMBOL, NodeKind.POP_SCOPED_SYMBOL})
SYMBOL_KINDS = PUSH_KINDS | POP_KINDS
SINGLETON_KINDS = frozenset({NodeKind.ROOT, NodeKind.JUMP_TO})


# =============================================================================
# SINGLETONS
# =============================================================================

# Arena index 0 is the null sentinel; the singletons occupy the next two slots.
SENTINEL_INDEX = 0
ROOT_NODE_INDEX = 1
JUMP_TO_NODE_INDEX = 2
# Local ids of the singletons (they belong to no file)
ROOT_LOCAL_ID = 1
JUMP_TO_LOCAL_ID = 2

DEFAULT_PRECEDENCE = 0


# =============================================================================
# DISPLAY TEMPLATES
# =============================================================================

# (kind, flag) -> template.  The flag is is_reference for push kinds,
# is_definition for pop kinds and is_exported for scopes.
NODE_DISPLAY_TEMPLATES: Dict[Tuple[NodeKind, bool], str] = {
    (NodeKind.ROOT, False): "[root]",
    (NodeKind.JUMP_TO, False): "[jump to scope]",
    (NodeKind.DROP_SCOPES, False): "[{id} drop scopes]",
    (NodeKind.POP_SCOPED_SYMBOL, False): "[{id} pop scoped {symbol}]",
    (NodeKind.POP_SCOPED_SYMBOL, True): "[{id} scoped definition {symbol}]",
    (NodeKind.POP_SYMBOL, False): "[{id} pop {symbol}]",
    (NodeKind.POP_SYMBOL, True): "[{id} definition {symbol}]",
    (NodeKind.PUSH_SCOPED_SYMBOL, False): "[{id} push scoped {symbol} {scope}]",
    (NodeKind.PUSH_SCOPED_SYMBOL, True): "[{id} scoped reference {symbol} {scope}]",
    (NodeKind.PUSH_SYMBOL, False): "[{id} push {symbol}]",
    (NodeKind.PUSH_SYMBOL, True): "[{id} reference {symbol}]",
    (NodeKind.SCOPE, False): "[{id} scope]",
    (NodeKind.SCOPE, True): "[{id} exported scope]",
}

ROOT_ID_DISPLAY = "[root]"
JUMP_TO_ID_DISPLAY = "[jump]"


def get_display_template(kind: NodeKind, flag: bool) -> str:
    """Return the display template for a node kind and its refining flag."""
    if kind in SINGLETON_KINDS:
        flag = False
    return NODE_DISPLAY_TEMPLATES[(kind, bool(flag))]
