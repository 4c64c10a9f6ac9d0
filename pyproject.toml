[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lispcore"
version = "0.1.0"
description = "Tokenizer, expression nodes and runtime value types for a small Clojure-flavoured Lisp"
requires-python = ">=3.10"
dependencies = []
keywords = ["lisp", "interpreter", "tokenizer", "s-expression", "bignum"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lispcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
