"""Navigator overrides injected into every page of a scraping context."""
from __future__ import annotations

import json
import textwrap
from dataclasses import dataclass
from typing import Optional, Sequence, TYPE_CHECKING

from playwright.async_api import BrowserContext

if TYPE_CHECKING:  # pragma: no cover
    from lodging_search.config.settings import Settings


@dataclass(frozen=True)
class FingerprintOverrides:
    """Values presented to page scripts that probe for automation."""

    platform: Optional[str]
    languages: Sequence[str]
    hardware_concurrency: Optional[int]
    device_memory: Optional[float]
    webgl_vendor: Optional[str]
    webgl_renderer: Optional[str]


async def apply_fingerprint_overrides(context: BrowserContext, settings: "Settings") -> None:
    overrides = settings.fingerprint_overrides()
    if not overrides:
        return
    await context.add_init_script(build_init_script(overrides))


def build_init_script(overrides: FingerprintOverrides) -> str:
    """Generate the JavaScript payload that applies the overrides."""
    payload = json.dumps(
        {
            "platform": overrides.platform,
            "languages": list(overrides.languages),
            "hardwareConcurrency": overrides.hardware_concurrency,
            "deviceMemory": overrides.device_memory,
            "webglVendor": overrides.webgl_vendor,
            "webglRenderer": overrides.webgl_renderer,
        }
    )
    script = f"""
    (() => {{
      const override = {payload};
      const define = (obj, prop, value) => {{
        if (value === undefined || value === null) return;
        try {{
          Object.defineProperty(obj, prop, {{ get: () => value, configurable: true }});
        }} catch (err) {{}}
      }};

      try {{
        Object.defineProperty(Navigator.prototype, 'webdriver', {{ get: () => undefined, configurable: true }});
      }} catch (err) {{}}
      define(navigator, 'platform', override.platform);
      if (Array.isArray(override.languages) && override.languages.length) {{
        define(navigator, 'languages', Object.freeze(override.languages.slice()));
        define(navigator, 'language', override.languages[0]);
      }}
      define(navigator, 'hardwareConcurrency', override.hardwareConcurrency);
      define(navigator, 'deviceMemory', override.deviceMemory);

      if (!window.chrome) {{
        define(window, 'chrome', {{ runtime: {{}}, app: {{ isInstalled: false }} }});
      }}

      if (override.webglVendor || override.webglRenderer) {{
        const patch = proto => {{
          if (!proto || !proto.getParameter) return;
          const original = proto.getParameter;
          proto.getParameter = function(parameter) {{
            if (parameter === 37445 && override.webglVendor) return override.webglVendor;
            if (parameter === 37446 && override.webglRenderer) return override.webglRenderer;
            return original.call(this, parameter);
          }};
        }};
        if (typeof WebGLRenderingContext !== 'undefined') patch(WebGLRenderingContext.prototype);
        if (typeof WebGL2RenderingContext !== 'undefined') patch(WebGL2RenderingContext.prototype);
      }}
    }})();
    """
    return textwrap.dedent(script).strip()
