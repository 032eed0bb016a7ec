"""Anti-detection patches for automated pages.

The composite script below is registered once per page with
``add_init_script`` and re-runs on every document load (including nested
frames) before any site script, so navigations never need re-registration.
"""

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage

from ..core.errors import ProtocolError

logger = structlog.get_logger(__name__)

# Desktop Chrome on macOS; passed to the browser context when stealth is on
STEALTH_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

STEALTH_LOCALE = "en-US"
STEALTH_LANGUAGES = ("en-US", "en")

STEALTH_LAUNCH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--disable-extensions",
    "--disable-default-apps",
    "--disable-component-update",
    "--no-first-run",
)

STEALTH_SCRIPT = """
(() => {
    // navigator.webdriver
    Object.defineProperty(Navigator.prototype, 'webdriver', {
        get: () => false,
        configurable: true,
    });

    // window.chrome runtime
    if (!window.chrome) {
        window.chrome = {
            runtime: {
                onConnect: undefined,
                onMessage: undefined,
                connect: function() {},
                sendMessage: function() {},
            },
            loadTimes: function() { return {}; },
            csi: function() { return {}; },
        };
    }

    // navigator.plugins / mimeTypes, passing instanceof checks
    const nativeLooking = (fn, name) => new Proxy(fn, {
        get: (target, key) => {
            if (key === 'toString') return () => `function ${name}() { [native code] }`;
            return Reflect.get(target, key);
        },
    });
    const plugins = Object.create(PluginArray.prototype);
    [
        { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer', description: 'Portable Document Format' },
        { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai', description: '' },
        { name: 'Native Client', filename: 'internal-nacl-plugin', description: '' },
    ].forEach((p, i) => {
        const plugin = Object.create(Plugin.prototype);
        Object.defineProperties(plugin, {
            name: { value: p.name, enumerable: true },
            filename: { value: p.filename, enumerable: true },
            description: { value: p.description, enumerable: true },
            length: { value: 1, enumerable: true },
        });
        plugins[i] = plugin;
    });
    Object.defineProperty(plugins, 'length', { value: 3, enumerable: true });
    plugins.item = nativeLooking(function item(i) { return this[i] || null; }, 'item');
    plugins.namedItem = nativeLooking(function namedItem(name) {
        for (let i = 0; i < this.length; i++) { if (this[i].name === name) return this[i]; }
        return null;
    }, 'namedItem');
    plugins.refresh = nativeLooking(function refresh() {}, 'refresh');
    Object.defineProperty(Navigator.prototype, 'plugins', { get: () => plugins, configurable: true });

    const mimeTypes = Object.create(MimeTypeArray.prototype);
    Object.defineProperty(mimeTypes, 'length', { value: 2, enumerable: true });
    Object.defineProperty(Navigator.prototype, 'mimeTypes', { get: () => mimeTypes, configurable: true });

    // navigator.languages
    const languages = Object.freeze(__LANGUAGES__);
    Object.defineProperty(Navigator.prototype, 'languages', { get: () => languages, configurable: true });

    if (navigator.platform === '') {
        Object.defineProperty(Navigator.prototype, 'platform', { get: () => 'MacIntel', configurable: true });
    }
    if (!navigator.hardwareConcurrency) {
        Object.defineProperty(Navigator.prototype, 'hardwareConcurrency', { get: () => 8, configurable: true });
    }
    if (!navigator.connection) {
        const connection = { effectiveType: '4g', rtt: 50, downlink: 10, saveData: false };
        Object.defineProperty(Navigator.prototype, 'connection', { get: () => connection, configurable: true });
    }
    if (navigator.userAgentData) {
        const brands = [
            { brand: 'Not_A Brand', version: '8' },
            { brand: 'Chromium', version: '120' },
            { brand: 'Google Chrome', version: '120' },
        ];
        const uaData = {
            brands: brands,
            mobile: false,
            platform: 'macOS',
            getHighEntropyValues: () => Promise.resolve({
                brands: brands,
                mobile: false,
                platform: 'macOS',
                platformVersion: '13.0.0',
                architecture: 'x86',
                model: '',
                uaFullVersion: '120.0.0.0',
            }),
        };
        Object.defineProperty(Navigator.prototype, 'userAgentData', { get: () => uaData, configurable: true });
    }

    // Permissions.query: notifications never report "denied"
    if (window.Permissions && window.Permissions.prototype.query) {
        const originalQuery = window.Permissions.prototype.query;
        window.Permissions.prototype.query = function(parameters) {
            if (parameters && parameters.name === 'notifications') {
                const state = Notification.permission === 'granted' ? 'granted' : 'prompt';
                return Promise.resolve({ state: state, onchange: null });
            }
            return originalQuery.call(this, parameters);
        };
    }

    // WebGL vendor / renderer
    const patchWebGL = (proto) => {
        const getParameter = proto.getParameter;
        proto.getParameter = function(param) {
            if (param === 0x9245) return 'Intel Inc.';                 // UNMASKED_VENDOR_WEBGL
            if (param === 0x9246) return 'Intel Iris OpenGL Engine';   // UNMASKED_RENDERER_WEBGL
            return getParameter.call(this, param);
        };
    };
    if (typeof WebGLRenderingContext !== 'undefined') patchWebGL(WebGLRenderingContext.prototype);
    if (typeof WebGL2RenderingContext !== 'undefined') patchWebGL(WebGL2RenderingContext.prototype);

    // iframe.contentWindow shares the patched chrome object
    try {
        const descriptor = Object.getOwnPropertyDescriptor(HTMLIFrameElement.prototype, 'contentWindow');
        if (descriptor && descriptor.get) {
            Object.defineProperty(HTMLIFrameElement.prototype, 'contentWindow', {
                get: function() {
                    const w = descriptor.get.call(this);
                    try {
                        if (w && !w.chrome) w.chrome = window.chrome;
                    } catch (e) {}  // cross-origin frame
                    return w;
                },
                configurable: true,
            });
        }
    } catch (e) {}

    // outer dimensions mirror the inner ones
    Object.defineProperty(window, 'outerWidth', { get: () => window.innerWidth, configurable: true });
    Object.defineProperty(window, 'outerHeight', { get: () => window.innerHeight, configurable: true });
})();
""".replace("__LANGUAGES__", "[" + ", ".join(f"'{lang}'" for lang in STEALTH_LANGUAGES) + "]")


class StealthInjector:
    """Registers the composite stealth script on a page."""

    script = STEALTH_SCRIPT

    @staticmethod
    def launch_args() -> list[str]:
        """Chromium flags that remove automation hints."""
        return list(STEALTH_LAUNCH_ARGS)

    @staticmethod
    def context_options() -> dict[str, str]:
        """Browser-context options applied when stealth is enabled."""
        return {"user_agent": STEALTH_USER_AGENT, "locale": STEALTH_LOCALE}

    @classmethod
    async def apply(cls, page: PlaywrightPage) -> None:
        """Register the stealth script to run on every new document of ``page``.

        Raises:
            ProtocolError: If the registration was rejected
        """
        try:
            await page.add_init_script(script=cls.script)
        except PlaywrightError as e:
            logger.error("stealth_injection_failed", error=str(e))
            raise ProtocolError(f"Failed to inject stealth script: {e}") from e

        logger.debug("stealth_injected", script_length=len(cls.script))
