"""
Buddy Runtime Preamble

JavaScript support code prepended to every compiled program. Helpers that
user code can call take a single record argument, the same calling
convention the transpiler emits for Buddy functions.
"""

# Used by the code emitted from the transpiler
SUPPORT = """\
Array.prototype.append = function(params) {
  const { _1: element } = params;
  this.push(element);
  return this;
};

for (const proto of [String.prototype, Array.prototype]) {
  Object.defineProperty(proto, 'count', {
    get: function() {
      return this.length;
    },
    enumerable: false,
    configurable: true
  });
}

function range(start, end) {
  return Array.from({ length: Math.max(end - start + 1, 0) }, (_, i) => start + i);
}

function tryOptional(fn) {
  try {
    return fn();
  } catch (error) {
    return null;
  }
}

function tryForce(fn) {
  try {
    return fn();
  } catch (error) {
    throw new Error("Fatal error: force try failed with error: " + error);
  }
}"""

# Callable from Buddy code
LIBRARY = """\
function substr(params = {}) {
  const { _1: str, start, end } = params;
  if (start < 0 || end < start || end > str.length) {
    return "";
  }
  return str.slice(start, end);
}

function charAt(params = {}) {
  const { _1: str, index } = params;
  if (index < 0 || index >= str.length) {
    return null;
  }
  return str[index];
}

function stringify(params = {}) {
  const { _1: arg } = params;
  return JSON.stringify(arg);
}

function print(params = {}) {
  const args = [];
  for (let i = 1; ("_" + i) in params; i++) {
    args.push(params["_" + i]);
  }
  console.log(...args);
}"""

RUNTIME = SUPPORT + "\n\n" + LIBRARY
