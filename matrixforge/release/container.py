"""Container image distribution of the release binary.

An alternate channel for the same binary the matrix produces: a two-stage
image that compiles a static musl binary in a builder image, then copies
only that binary into a minimal runtime image and makes it the default
command.
"""

from __future__ import annotations

import logging
from pathlib import Path

from matrixforge.backends.commands import CommandExecutor
from matrixforge.core.errors import PackagingError

logger = logging.getLogger(__name__)

MUSL_TRIPLE = "x86_64-unknown-linux-musl"

_DOCKERFILE_TEMPLATE = """\
FROM {builder_image} AS builder

ADD --chown=rust:rust . ./

RUN cargo build --release --bin {binary} --target {triple}

FROM {runtime_image}

WORKDIR /bin

COPY --from=builder {builder_workdir}/target/{triple}/release/{binary} .
RUN chmod +x {binary}

CMD ["{binary}"]
"""


class ContainerImageBuilder:
    """Builds the runtime image for one fixed (static) target triple.

    Parameters
    ----------
    executor:
        Runs the container engine.
    binary_name:
        The binary to compile and set as entrypoint.
    builder_image / runtime_image:
        Build-capable and minimal base images.
    engine:
        Container engine binary.
    """

    target_triple = MUSL_TRIPLE

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        binary_name: str = "cgf",
        builder_image: str = "ekidd/rust-musl-builder",
        builder_workdir: str = "/home/rust/src",
        runtime_image: str = "alpine",
        engine: str = "docker",
    ) -> None:
        self._executor = executor
        self.binary_name = binary_name
        self.builder_image = builder_image
        self.builder_workdir = builder_workdir
        self.runtime_image = runtime_image
        self.engine = engine

    def render_dockerfile(self) -> str:
        return _DOCKERFILE_TEMPLATE.format(
            builder_image=self.builder_image,
            builder_workdir=self.builder_workdir,
            runtime_image=self.runtime_image,
            binary=self.binary_name,
            triple=self.target_triple,
        )

    def build(
        self,
        tag: str,
        context_dir: Path,
        dockerfile_dir: Path,
        *,
        image: str | None = None,
    ) -> str:
        """Build the image and return its reference (``<image>:<tag>``).

        The Dockerfile is written to *dockerfile_dir*, outside the source
        tree, and passed to the engine with ``-f``.
        """
        image_ref = f"{image or self.binary_name}:{tag}"
        dockerfile_dir = Path(dockerfile_dir)
        dockerfile_dir.mkdir(parents=True, exist_ok=True)
        dockerfile = dockerfile_dir / "Dockerfile"
        dockerfile.write_text(self.render_dockerfile(), encoding="utf-8")

        result = self._executor.execute(
            self.engine,
            ["build", "-t", image_ref, "-f", str(dockerfile), str(context_dir)],
        )
        if not result.ok:
            raise PackagingError(
                self.target_triple,
                f"{self.engine} build exited {result.exit_code}: {result.tail()}",
            )
        logger.info("Built container image %s [%s]", image_ref, self.target_triple)
        return image_ref
