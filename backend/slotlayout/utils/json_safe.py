from typing import Any, Iterator, List, Optional, Set, Tuple

_SCALARS = (str, int, float, bool, type(None))
_DONE = object()

# Deeper payloads are rejected by the validator and replaced by auto-fix
MAX_DEPTH = 64


def _children(value: Any, path: str):
    if isinstance(value, dict):
        return [(f"{path}.{key}", child) for key, child in value.items()]
    return [(f"{path}[{index}]", child) for index, child in enumerate(value)]


def find_cycle(value: Any, path: str = "$") -> Optional[str]:
    """
    Return the path of the first circular reference inside a JSON-like
    structure, or None when the structure is a tree.

    Walks with an explicit stack, so nesting depth is not bounded by the
    interpreter's recursion limit.
    """
    if not isinstance(value, (dict, list, tuple)):
        return None

    active: Set[int] = {id(value)}
    # (container id, remaining children) per level of the current branch
    stack: List[Tuple[int, Iterator]] = [(id(value), iter(_children(value, path)))]

    while stack:
        marker, pending = stack[-1]
        entry = next(pending, _DONE)
        if entry is _DONE:
            stack.pop()
            active.discard(marker)
            continue

        child_path, child = entry
        if not isinstance(child, (dict, list, tuple)):
            continue
        if id(child) in active:
            return child_path
        active.add(id(child))
        stack.append((id(child), iter(_children(child, child_path))))

    return None


def find_excess_depth(value: Any, limit: int = MAX_DEPTH, path: str = "$") -> Optional[str]:
    """Path of the first container nested deeper than ``limit``, or None."""
    stack = [(value, path, 0)]
    seen: Set[int] = set()
    while stack:
        node, node_path, depth = stack.pop()
        if not isinstance(node, (dict, list, tuple)) or id(node) in seen:
            continue
        if depth > limit:
            return node_path
        seen.add(id(node))
        stack.extend((child, child_path, depth + 1) for child_path, child in _children(node, node_path))
    return None


def json_copy(value: Any) -> Any:
    """
    Deep copy restricted to JSON types.

    Tuples become lists, keys become strings, circular references become
    None and any other object is stringified.
    """
    if isinstance(value, _SCALARS):
        return value
    if not isinstance(value, (dict, list, tuple)):
        return str(value)

    root: Any = {} if isinstance(value, dict) else []
    active: Set[int] = {id(value)}
    # (source, copy, remaining items) per level of the current branch
    stack: List[Tuple[Any, Any, Iterator]] = [(value, root, _items(value))]

    while stack:
        source, target, pending = stack[-1]
        entry = next(pending, _DONE)
        if entry is _DONE:
            stack.pop()
            active.discard(id(source))
            continue

        key, child = entry
        if isinstance(child, _SCALARS):
            copied = child
        elif not isinstance(child, (dict, list, tuple)):
            copied = str(child)
        elif id(child) in active:
            copied = None
        else:
            copied = {} if isinstance(child, dict) else []
            active.add(id(child))
            stack.append((child, copied, _items(child)))

        if isinstance(target, dict):
            target[key] = copied
        else:
            target.append(copied)

    return root


def _items(value: Any) -> Iterator:
    if isinstance(value, dict):
        return iter([(str(key), child) for key, child in value.items()])
    return iter([(None, child) for child in value])
