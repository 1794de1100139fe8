[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "voxelimage"
version = "0.1.0"
description = "Intensity projections of voxel volumes and PNG, BMP, TGA, HDR and JPEG encoders"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["image", "volume", "voxel", "projection", "png", "bmp", "tga", "hdr", "jpeg", "deflate"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["voxelimage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
