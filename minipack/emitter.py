"""Bundle emission: module table plus loader runtime."""

from __future__ import annotations

import json

from .models import Asset, Graph

_MODULE_TEMPLATE = """  {identity}: [
    function (require, module, exports) {{
{code}
    }},
    {mapping},
  ],
"""

_LOCAL_REQUIRE = """    function localRequire(name) {
      if (!Object.prototype.hasOwnProperty.call(mapping, name)) {
        throw new Error("Cannot find module '" + name + "' from module " + id);
      }
      return require(mapping[name]);
    }
"""

_CACHED_LOADER = """(function (modules) {
  var cache = {};

  function require(id) {
    if (Object.prototype.hasOwnProperty.call(cache, id)) {
      return cache[id].exports;
    }
    var fn = modules[id][0];
    var mapping = modules[id][1];

%(local_require)s
    var module = { exports: {} };
    cache[id] = module;
    try {
      fn(localRequire, module, module.exports);
    } catch (err) {
      delete cache[id];
      throw err;
    }
    return module.exports;
  }

  require(0);
})({
%(modules)s});
"""

_UNCACHED_LOADER = """(function (modules) {
  function require(id) {
    var fn = modules[id][0];
    var mapping = modules[id][1];

%(local_require)s
    var module = { exports: {} };
    fn(localRequire, module, module.exports);
    return module.exports;
  }

  require(0);
})({
%(modules)s});
"""


class BundleEmitter:
    """Serialises a module graph into one self-contained JavaScript program.

    Each module body is wrapped in a function receiving ``require``,
    ``module`` and ``exports``; ``require`` is the module's own resolver that
    maps its import strings to identities through the asset mapping. With
    ``cache_exports`` a module body runs at most once per bundle execution;
    a module that throws is evicted so no partial exports escape.
    """

    def __init__(self, *, cache_exports: bool = True) -> None:
        self.cache_exports = cache_exports

    def emit(self, graph: Graph) -> str:
        modules = "".join(self._module_entry(asset) for asset in graph)
        template = _CACHED_LOADER if self.cache_exports else _UNCACHED_LOADER
        return template % {"local_require": _LOCAL_REQUIRE, "modules": modules}

    def _module_entry(self, asset: Asset) -> str:
        return _MODULE_TEMPLATE.format(
            identity=asset.identity,
            code=asset.code.rstrip("\n"),
            mapping=json.dumps(asset.mapping),
        )


__all__ = ["BundleEmitter"]
