"""Composition graph: engine-agnostic nodes of a render plan.

A plan is a list of inputs plus nodes in dependency order. Each node consumes
input streams (``"3:v"``, ``"1:a"``) or the labels of earlier nodes and defines
exactly one output label. Optional features are whole nodes: dropping a
feature means omitting its node and the edges into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slideshow_render.models.outcome import Feature, FeatureFlags


@dataclass(frozen=True)
class Filter:
    """One engine filter with positional and keyword options."""

    name: str
    positional: tuple = ()
    options: tuple[tuple[str, object], ...] = ()

    @classmethod
    def of(cls, name: str, *positional: object, **options: object) -> Filter:
        return cls(name=name, positional=tuple(positional), options=tuple(options.items()))

    def option(self, key: str) -> object:
        return dict(self.options).get(key)


@dataclass(frozen=True)
class Chain:
    """A linear run of filters from input pads to one output pad."""

    inputs: tuple[str, ...]
    filters: tuple[Filter, ...]
    output: str


@dataclass(frozen=True)
class InputSource:
    index: int
    role: str  # "image" | "narration" | "ambience" | "overlay" | "end_card"
    path: str
    options: tuple[str, ...] = ()
    feature: Optional[Feature] = None  # optional feature this input belongs to

    def stream(self, media: str) -> str:
        return f"{self.index}:{media}"


@dataclass(frozen=True)
class OutputSpec:
    width: int
    height: int
    fps: int
    duration: float


@dataclass(frozen=True)
class Node:
    label: str

    @property
    def inputs(self) -> tuple[str, ...]:
        raise NotImplementedError

    def chains(self) -> list[Chain]:
        raise NotImplementedError


@dataclass(frozen=True)
class TransformNode(Node):
    """Per-scene (or end card) visual transform: cover, crop, motion, normalize, fades."""

    source: str = ""
    steps: tuple[Filter, ...] = ()
    scene_index: Optional[int] = None

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.source,)

    def chains(self) -> list[Chain]:
        return [Chain(inputs=(self.source,), filters=self.steps, output=self.label)]


@dataclass(frozen=True)
class MergeNode(Node):
    """Temporal merge of scenes in index order, trimmed to the output duration.

    Crossfade style chains pairwise ``xfade`` at each scene offset; cut style
    concatenates. The scene track is trimmed to the story duration, the end
    card (if any) is appended, and the result is trimmed to the narration.
    """

    scenes: tuple[str, ...] = ()
    crossfade: bool = False
    offsets: tuple[float, ...] = ()
    fade: float = 0.0
    story_duration: float = 0.0
    output_duration: float = 0.0
    end_card: Optional[str] = None

    @property
    def inputs(self) -> tuple[str, ...]:
        return self.scenes + ((self.end_card,) if self.end_card else ())

    def chains(self) -> list[Chain]:
        chains: list[Chain] = []
        track = f"{self.label}_scenes"
        if self.crossfade and len(self.scenes) > 1:
            current = self.scenes[0]
            for i in range(1, len(self.scenes)):
                out = track if i == len(self.scenes) - 1 else f"{self.label}_x{i}"
                chains.append(
                    Chain(
                        inputs=(current, self.scenes[i]),
                        filters=(
                            Filter.of("xfade", transition="fade", duration=self.fade, offset=self.offsets[i]),
                        ),
                        output=out,
                    )
                )
                current = out
        else:
            chains.append(
                Chain(
                    inputs=self.scenes,
                    filters=(Filter.of("concat", n=len(self.scenes), v=1, a=0),),
                    output=track,
                )
            )

        story_steps: list[Filter] = [
            Filter.of("trim", duration=self.story_duration),
            Filter.of("setpts", "PTS-STARTPTS"),
        ]
        shortfall = self.output_duration - self.story_duration
        if self.end_card:
            story = f"{self.label}_story"
            chains.append(Chain(inputs=(track,), filters=tuple(story_steps), output=story))
            chains.append(
                Chain(
                    inputs=(story, self.end_card),
                    filters=(
                        Filter.of("concat", n=2, v=1, a=0),
                        Filter.of("trim", duration=self.output_duration),
                        Filter.of("setpts", "PTS-STARTPTS"),
                    ),
                    output=self.label,
                )
            )
            return chains

        if shortfall > 1e-6:
            # story was planned around an end card that is not in this plan
            story_steps.append(Filter.of("tpad", stop_mode="clone", stop_duration=shortfall))
        story_steps += [
            Filter.of("trim", duration=self.output_duration),
            Filter.of("setpts", "PTS-STARTPTS"),
        ]
        chains.append(Chain(inputs=(track,), filters=tuple(story_steps), output=self.label))
        return chains


@dataclass(frozen=True)
class OverlayCompositeNode(Node):
    """Blend a looped, semi-transparent overlay over the merged visual track."""

    base: str = ""
    overlay: str = ""
    opacity: float = 0.18
    width: int = 0
    height: int = 0
    fps: int = 30
    duration: float = 0.0

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.base, self.overlay)

    def chains(self) -> list[Chain]:
        prepared = f"{self.label}_layer"
        return [
            Chain(
                inputs=(self.overlay,),
                filters=(
                    Filter.of("scale", w=self.width, h=self.height, force_original_aspect_ratio="increase"),
                    Filter.of("crop", w=self.width, h=self.height),
                    Filter.of("fps", self.fps),
                    Filter.of("format", "rgba"),
                    Filter.of("colorchannelmixer", aa=self.opacity),
                    Filter.of("trim", duration=self.duration),
                    Filter.of("setpts", "PTS-STARTPTS"),
                ),
                output=prepared,
            ),
            Chain(
                inputs=(self.base, prepared),
                filters=(
                    Filter.of("overlay", 0, 0, format="auto", shortest=1),
                    Filter.of("format", "yuv420p"),
                ),
                output=self.label,
            ),
        ]


@dataclass(frozen=True)
class AudioMixNode(Node):
    """Mix looped, attenuated ambience under the narration.

    Narration is the duration master: the mix ends with the narration.
    """

    narration: str = ""
    ambience: str = ""
    volume: float = 0.2
    duration: float = 0.0

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.narration, self.ambience)

    def chains(self) -> list[Chain]:
        bed = f"{self.label}_bed"
        return [
            Chain(
                inputs=(self.ambience,),
                filters=(
                    Filter.of("atrim", duration=self.duration),
                    Filter.of("asetpts", "PTS-STARTPTS"),
                    Filter.of("volume", self.volume),
                ),
                output=bed,
            ),
            Chain(
                inputs=(self.narration, bed),
                filters=(Filter.of("amix", inputs=2, duration="first", dropout_transition=0, normalize=0),),
                output=self.label,
            ),
        ]


@dataclass(frozen=True)
class RenderPlan:
    rung: str
    inputs: tuple[InputSource, ...]
    nodes: tuple[Node, ...]
    features: FeatureFlags
    video_out: str
    audio_out: str  # node label, or an input stream such as "1:a"
    output: OutputSpec

    def node_types(self) -> list[str]:
        return [type(n).__name__ for n in self.nodes]

    def has_node(self, node_type: type) -> bool:
        return any(isinstance(n, node_type) for n in self.nodes)

    def input_for(self, role: str) -> Optional[InputSource]:
        return next((i for i in self.inputs if i.role == role), None)

    def validate(self) -> None:
        """Check that every node's inputs are defined before the node itself.

        Raises:
            ValueError: On a forward or dangling reference.
        """
        defined: set[str] = set()
        for source in self.inputs:
            defined.update({source.stream("v"), source.stream("a")})
        for node in self.nodes:
            missing = [ref for ref in node.inputs if ref not in defined]
            if missing:
                raise ValueError(f"node {node.label} references undefined inputs {missing}")
            if node.label in defined:
                raise ValueError(f"duplicate label {node.label}")
            defined.add(node.label)
        for terminal in (self.video_out, self.audio_out):
            if terminal not in defined:
                raise ValueError(f"terminal output {terminal} is not defined")
