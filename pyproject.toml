[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "crakit"
version = "0.1.0"
description = "Helpers for full-stack web apps: view rendering with Vite bundles, SMTP mailing, React Query hook generation and development server tooling."
requires-python = ">=3.11"
dependencies = [
    "jinja2",
]
keywords = [
    "web",
    "framework",
    "vite",
    "templates",
    "jinja2",
    "react-query",
    "dev-server",
    "mailer",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Software Development :: Code Generators",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["crakit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
