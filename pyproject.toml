[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rukpak"
version = "0.1.0"
description = "Bundle filesystems, tarballs and storage, plus a commit message checker for downstream repositories"
requires-python = ">=3.10"
dependencies = []
keywords = ["bundle", "tarball", "storage", "wsgi", "git", "commit-checker"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rukpak-commitchecker = "rukpak.commitchecker:main"

[tool.hatch.build.targets.wheel]
packages = ["rukpak"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
