"""In-page DOM-to-raster routine evaluated by the capture engine.

The function takes ``{selector, options, moduleUrl}`` and resolves to
``{dataUrl, width, height, elementBox, textBoxes}``. ``textBoxes`` are in
raster coordinates (CSS px * scale, offset by the padding).
"""

SNAPSHOT_SCRIPT = r"""
async ({ selector, options, moduleUrl }) => {
  const element = document.querySelector(selector);
  if (!element) {
    throw new Error(`Element not found: ${selector}`);
  }

  let snapdom = window.snapdom;
  if (!snapdom) {
    const module = await import(moduleUrl);
    snapdom = module.snapdom;
  }

  const scale = options.scale;
  const padding = options.padding || 0;
  const rect = element.getBoundingClientRect();

  const textBoxes = [];
  const walker = document.createTreeWalker(element, NodeFilter.SHOW_TEXT);
  while (walker.nextNode() && textBoxes.length < 500) {
    const node = walker.currentNode;
    if (!node.textContent.trim()) continue;
    const range = document.createRange();
    range.selectNodeContents(node);
    for (const r of range.getClientRects()) {
      if (r.width === 0 || r.height === 0) continue;
      textBoxes.push({
        x: Math.floor((r.left - rect.left + padding) * scale),
        y: Math.floor((r.top - rect.top + padding) * scale),
        width: Math.ceil(r.width * scale),
        height: Math.ceil(r.height * scale),
      });
    }
  }

  let target = element;
  let wrapper = null;
  if (padding > 0) {
    wrapper = document.createElement('div');
    wrapper.style.padding = `${padding}px`;
    wrapper.style.display = 'inline-block';
    wrapper.style.backgroundColor = 'transparent';
    wrapper.appendChild(element.cloneNode(true));
    element.parentNode.insertBefore(wrapper, element);
    element.style.display = 'none';
    target = wrapper;
  }

  let blob;
  try {
    const result = await snapdom(target, {
      scale,
      compress: options.compress,
      fast: options.fast,
      embedFonts: options.embedFonts,
      backgroundColor: options.backgroundColor,
      width: options.width,
      height: options.height,
    });
    blob = await result.toBlob({ type: 'png' });
  } finally {
    if (wrapper) {
      wrapper.remove();
      element.style.display = '';
    }
  }

  const dataUrl = await new Promise((resolve, reject) => {
    const reader = new FileReader();
    reader.onload = () => resolve(reader.result);
    reader.onerror = () => reject(reader.error || new Error('Failed to read snapshot blob'));
    reader.readAsDataURL(blob);
  });

  const bitmap = await createImageBitmap(blob);
  return {
    dataUrl,
    width: bitmap.width,
    height: bitmap.height,
    elementBox: {
      x: Math.round(rect.left),
      y: Math.round(rect.top),
      width: Math.round(rect.width),
      height: Math.round(rect.height),
    },
    textBoxes,
  };
}
"""


def snapshot_options(options) -> dict:
    """CaptureOptions -> the option object the in-page routine expects."""
    return {
        "scale": options.scale,
        "compress": options.compress,
        "fast": options.fast,
        "embedFonts": options.embed_fonts,
        "backgroundColor": options.background_color,
        "padding": options.padding,
        "width": options.width,
        "height": options.height,
    }
