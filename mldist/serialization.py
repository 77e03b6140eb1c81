"""
Save and load distributions as XML, JSON or a binary ``.npz`` archive.

Every distribution reduces to a structural form (see
:meth:`Distribution.to_dict`)::

    {'type': 'GaussianDistribution', 'dtype': 'float64',
     'params': {'mean': array([...]), 'cov': array([[...]])}}

whose ``params`` hold numpy arrays, numbers, lists and nested dicts. The three
encodings store that form without loss: floats are written with ``repr`` in
XML and JSON so that they parse back to the identical value, and the binary
form keeps the raw arrays.

Examples
--------
>>> g = GaussianDistribution.from_classical_params(mean=[0.0, 1.0], cov=np.eye(2))
>>> text = dumps(g, 'xml')
>>> loads(text, 'xml').mean
array([0., 1.])
>>> save(g, 'model.npz')
>>> g2 = load('model.npz')
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging
import xml.etree.ElementTree as ET
import zipfile
import numpy as np

from mldist.base import Distribution
from mldist.distributions import (
    DiscreteDistribution,
    GaussianDistribution,
    DiagonalGaussianDistribution,
    LaplaceDistribution,
    GammaDistribution,
    RegressionDistribution,
)
from mldist.exceptions import SerializationError

logger = logging.getLogger(__name__)

FORMATS = ('xml', 'json', 'binary')

_REGISTRY = {
    cls.__name__: cls
    for cls in (
        DiscreteDistribution,
        GaussianDistribution,
        DiagonalGaussianDistribution,
        LaplaceDistribution,
        GammaDistribution,
        RegressionDistribution,
    )
}

_SUFFIXES = {
    '.xml': 'xml',
    '.json': 'json',
    '.npz': 'binary',
    '.bin': 'binary',
}


def _check_format(format: str) -> str:
    if format not in FORMATS:
        raise ValueError(f"Unknown format {format!r}; expected one of {FORMATS}")
    return format


# ============================================================
# Structural form
# ============================================================

def to_dict(dist: Distribution) -> Dict[str, Any]:
    """Structural form of ``dist``; the type must be a registered distribution."""
    name = type(dist).__name__
    if _REGISTRY.get(name) is not type(dist):
        raise TypeError(f"Cannot serialize {name}; it is not a registered distribution")
    return dist.to_dict()


def from_dict(state: Dict[str, Any], format: Optional[str] = None) -> Distribution:
    """
    Rebuild a distribution from its structural form.

    Raises
    ------
    SerializationError
        If the type is unknown or the parameters are missing or inconsistent.
    """
    if not isinstance(state, dict):
        raise SerializationError("Expected a mapping at the top level", format=format)
    name = state.get('type')
    cls = _REGISTRY.get(name)
    if cls is None:
        raise SerializationError(f"Unknown distribution type {name!r}", format=format)
    try:
        return cls.from_dict(state)
    except (KeyError, TypeError, ValueError, IndexError) as e:
        raise SerializationError(
            f"Invalid parameters for {name}: {e}", format=format
        ) from e


# ============================================================
# XML
# ============================================================

def _xml_encode(parent: ET.Element, name: str, value: Any) -> None:
    if isinstance(value, dict):
        element = ET.SubElement(parent, 'dict', name=name)
        for key, item in value.items():
            _xml_encode(element, key, item)
    elif isinstance(value, (list, tuple)):
        element = ET.SubElement(parent, 'list', name=name)
        for i, item in enumerate(value):
            _xml_encode(element, str(i), item)
    elif isinstance(value, np.ndarray):
        element = ET.SubElement(
            parent, 'array', name=name, dtype=value.dtype.name,
            shape=' '.join(str(s) for s in value.shape),
        )
        element.text = ' '.join(repr(v) for v in value.ravel().tolist())
    elif isinstance(value, (bool, int, float, np.number)):
        element = ET.SubElement(parent, 'scalar', name=name)
        element.text = repr(float(value))
    elif isinstance(value, str):
        element = ET.SubElement(parent, 'string', name=name)
        element.text = value
    else:
        raise TypeError(f"Cannot encode {type(value).__name__} as XML")


def _xml_decode(element: ET.Element) -> Any:
    tag = element.tag
    if tag == 'dict':
        return {child.get('name'): _xml_decode(child) for child in element}
    if tag == 'list':
        return [_xml_decode(child) for child in element]
    if tag == 'array':
        shape = tuple(int(s) for s in (element.get('shape') or '').split())
        tokens = (element.text or '').split()
        values = np.array([float(t) for t in tokens], dtype=np.float64)
        return values.astype(np.dtype(element.get('dtype'))).reshape(shape)
    if tag == 'scalar':
        return float(element.text)
    if tag == 'string':
        return element.text or ''
    raise ValueError(f"Unexpected element <{tag}>")


def _to_xml(state: Dict[str, Any]) -> str:
    root = ET.Element('distribution', type=state['type'], dtype=state['dtype'])
    _xml_encode(root, 'params', state['params'])
    return ET.tostring(root, encoding='unicode')


def _from_xml(text: str) -> Dict[str, Any]:
    root = ET.fromstring(text)
    if root.tag != 'distribution':
        raise ValueError(f"Root element is <{root.tag}>, expected <distribution>")
    params = root.find('dict')
    if params is None or params.get('name') != 'params':
        raise ValueError("Missing <dict name=\"params\"> element")
    return {
        'type': root.get('type'),
        'dtype': root.get('dtype'),
        'params': _xml_decode(params),
    }


# ============================================================
# JSON
# ============================================================

def _json_encode(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _json_encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_encode(item) for item in value]
    if isinstance(value, np.ndarray):
        return {
            '__ndarray__': value.ravel().tolist(),
            'dtype': value.dtype.name,
            'shape': list(value.shape),
        }
    if isinstance(value, np.generic):
        return value.item()
    return value


def _json_decode(value: Any) -> Any:
    if isinstance(value, dict):
        if '__ndarray__' in value:
            data = np.asarray(value['__ndarray__'], dtype=np.float64)
            return data.astype(np.dtype(value['dtype'])).reshape(value['shape'])
        return {key: _json_decode(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_json_decode(item) for item in value]
    return value


def _to_json(state: Dict[str, Any]) -> str:
    return json.dumps(_json_encode(state), indent=2)


def _from_json(text: Union[str, bytes]) -> Dict[str, Any]:
    return _json_decode(json.loads(text))


# ============================================================
# Binary (.npz)
# ============================================================

def _flatten(value: Any, prefix: str, out: Dict[str, np.ndarray]) -> None:
    """Flatten nested params into ``'a/b/#0'``-style keys; lists record ``#len``."""
    if isinstance(value, dict):
        for key, item in value.items():
            _flatten(item, f"{prefix}/{key}", out)
    elif isinstance(value, (list, tuple)):
        out[f"{prefix}/#len"] = np.array(len(value))
        for i, item in enumerate(value):
            _flatten(item, f"{prefix}/#{i}", out)
    else:
        out[prefix] = np.asarray(value)


def _unflatten(archive) -> Dict[str, Any]:
    tree: Dict[str, Any] = {}
    for key in archive.files:
        parts = key.split('/')
        node = tree
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        value = archive[key]
        node[parts[-1]] = value.item() if value.ndim == 0 else value

    def rebuild(node):
        if not isinstance(node, dict):
            return node
        if '#len' in node:
            return [rebuild(node[f"#{i}"]) for i in range(int(node['#len']))]
        return {key: rebuild(item) for key, item in node.items()}

    return rebuild(tree)


def _to_binary(state: Dict[str, Any]) -> bytes:
    arrays: Dict[str, np.ndarray] = {
        'type': np.array(state['type']),
        'dtype': np.array(state['dtype']),
    }
    _flatten(state['params'], 'params', arrays)
    buffer = BytesIO()
    np.savez(buffer, **arrays)
    return buffer.getvalue()


def _from_binary(data: bytes) -> Dict[str, Any]:
    with np.load(BytesIO(data), allow_pickle=False) as archive:
        state = _unflatten(archive)
    if 'params' not in state:
        raise KeyError('params')
    return state


# ============================================================
# Public API
# ============================================================

_ENCODERS = {'xml': _to_xml, 'json': _to_json, 'binary': _to_binary}
_DECODERS = {'xml': _from_xml, 'json': _from_json, 'binary': _from_binary}


def dumps(dist: Distribution, format: str = 'json') -> Union[str, bytes]:
    """
    Encode ``dist``.

    Parameters
    ----------
    dist : Distribution
    format : {'xml', 'json', 'binary'}

    Returns
    -------
    data : str or bytes
        Text for ``'xml'`` and ``'json'``, bytes for ``'binary'``.
    """
    format = _check_format(format)
    data = _ENCODERS[format](to_dict(dist))
    logger.debug("Encoded %s as %s (%d bytes)", type(dist).__name__, format, len(data))
    return data


def loads(data: Union[str, bytes], format: str = 'json') -> Distribution:
    """
    Decode a distribution produced by :func:`dumps`.

    Raises
    ------
    SerializationError
        If ``data`` is malformed, truncated or names an unknown type.
    """
    format = _check_format(format)
    if format == 'binary' and isinstance(data, str):
        raise SerializationError("Binary data must be bytes", format=format)
    try:
        state = _DECODERS[format](data)
    except (ET.ParseError, json.JSONDecodeError, zipfile.BadZipFile, EOFError,
            KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Malformed {format} data: {e}", format=format) from e
    dist = from_dict(state, format=format)
    logger.debug("Decoded %s from %s", type(dist).__name__, format)
    return dist


def _infer_format(path: Path, format: Optional[str]) -> str:
    if format is not None:
        return _check_format(format)
    try:
        return _SUFFIXES[path.suffix.lower()]
    except KeyError:
        raise ValueError(
            f"Cannot infer format from suffix {path.suffix!r}; pass format explicitly"
        )


def save(dist: Distribution, path: Union[str, Path], format: Optional[str] = None) -> None:
    """
    Write ``dist`` to ``path``.

    The format is taken from the suffix (``.xml``, ``.json``, ``.npz`` or
    ``.bin``) unless given explicitly.
    """
    path = Path(path)
    format = _infer_format(path, format)
    data = dumps(dist, format)
    if isinstance(data, bytes):
        path.write_bytes(data)
    else:
        path.write_text(data, encoding='utf-8')


def load(path: Union[str, Path], format: Optional[str] = None) -> Distribution:
    """
    Read a distribution written by :func:`save`.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    SerializationError
        If the file content is malformed.
    """
    path = Path(path)
    format = _infer_format(path, format)
    if format == 'binary':
        return loads(path.read_bytes(), format)
    return loads(path.read_text(encoding='utf-8'), format)
