"""Dino park viewer: loads the park, then flies a free camera over it with OpenGL."""

from __future__ import annotations

import argparse
import asyncio
import ctypes
import math
import os
import random
import sys
from dataclasses import dataclass
from typing import Dict, Sequence

import glfw
import glm
import numpy as np
from OpenGL.GL import *
import OpenGL.GL.shaders as gls

from asset_pipeline import ASSETS_DIR, BASE_DIR, FileAssetLoader
from park_catalog import default_catalog
from park_console import ConsoleInfoPanel, print_progress, print_subject_list
from park_world import Park, ParkDirector, build_park, create_scene
from scatter import DEFAULT_MIN_SPACING, DEFAULT_PROP_COUNT
from scene_graph import AmbientLight, Camera, DirectionalLight, Geometry, Node, Scene, Texture
from terrain_tiling import DEFAULT_TILES_PER_AXIS

WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FIELD_OF_VIEW = 75.0
NEAR_PLANE = 0.1
FAR_PLANE = 200.0
CAMERA_START = (0.0, 2.0, 10.0)

MOVE_SPEED = 12.0
RUN_MULTIPLIER = 2.5
MOUSE_SENSITIVITY = 0.12

SUBJECT_KEYS = [glfw.KEY_1, glfw.KEY_2, glfw.KEY_3, glfw.KEY_4, glfw.KEY_5,
                glfw.KEY_6, glfw.KEY_7, glfw.KEY_8, glfw.KEY_9, glfw.KEY_0]


@dataclass
class GpuMesh:
    vao: int
    count: int
    buffers: Sequence[int]
    ebo: int


class FlyControls:
    def __init__(self, camera: Camera):
        self.camera = camera
        self.yaw = -90.0
        self.pitch = 0.0
        self.sync_from_camera()

    def sync_from_camera(self) -> None:
        front = self.camera.front
        self.pitch = math.degrees(math.asin(max(-1.0, min(1.0, front.y))))
        self.yaw = math.degrees(math.atan2(front.z, front.x))

    def rotate(self, dx: float, dy: float) -> None:
        self.yaw += dx * MOUSE_SENSITIVITY
        self.pitch = max(-89.0, min(89.0, self.pitch + dy * MOUSE_SENSITIVITY))
        yaw_rad = math.radians(self.yaw)
        pitch_rad = math.radians(self.pitch)
        front = glm.vec3(
            math.cos(pitch_rad) * math.cos(yaw_rad),
            math.sin(pitch_rad),
            math.cos(pitch_rad) * math.sin(yaw_rad),
        )
        self.camera.look_at(self.camera.position + front)


keys_state: Dict[int, bool] = {}
mouse_data = {"first": True, "x": 0.0, "y": 0.0}


# ################################################################################################
# GLSL / OpenGL - Funções auxiliares
# ################################################################################################

def resource_path(*parts: str) -> str:
    return os.path.join(BASE_DIR, *parts)


def read_shader_source(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def compile_shader_program(vertex_path: str, fragment_path: str) -> int:
    vertex_code = read_shader_source(resource_path(vertex_path))
    fragment_code = read_shader_source(resource_path(fragment_path))
    program = gls.compileProgram(
        gls.compileShader(vertex_code, GL_VERTEX_SHADER),
        gls.compileShader(fragment_code, GL_FRAGMENT_SHADER),
    )
    return program


def upload_geometry(geometry: Geometry) -> GpuMesh:
    vao = glGenVertexArrays(1)
    glBindVertexArray(vao)

    buffers = glGenBuffers(3)
    for index, (array, size) in enumerate(((geometry.vertices, 3), (geometry.normals, 3), (geometry.uvs, 2))):
        data = np.ascontiguousarray(array, dtype=np.float32)
        glBindBuffer(GL_ARRAY_BUFFER, buffers[index])
        glBufferData(GL_ARRAY_BUFFER, data.nbytes, data, GL_STATIC_DRAW)
        glVertexAttribPointer(index, size, GL_FLOAT, GL_FALSE, 0, ctypes.c_void_p(0))
        glEnableVertexAttribArray(index)

    indices = np.ascontiguousarray(geometry.faces.ravel(), dtype=np.uint32)
    ebo = glGenBuffers(1)
    glBindBuffer(GL_ELEMENT_ARRAY_BUFFER, ebo)
    glBufferData(GL_ELEMENT_ARRAY_BUFFER, indices.nbytes, indices, GL_STATIC_DRAW)

    glBindVertexArray(0)
    return GpuMesh(vao=vao, count=int(indices.size), buffers=buffers, ebo=ebo)


def upload_texture(texture: Texture, repeat: bool = True) -> int:
    img_data = np.ascontiguousarray(texture.image, dtype=np.uint8)

    texture_id = glGenTextures(1)
    glBindTexture(GL_TEXTURE_2D, texture_id)
    glTexImage2D(GL_TEXTURE_2D, 0, GL_RGBA, texture.width, texture.height, 0, GL_RGBA, GL_UNSIGNED_BYTE, img_data)
    glGenerateMipmap(GL_TEXTURE_2D)

    glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MIN_FILTER, GL_LINEAR_MIPMAP_LINEAR)
    glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MAG_FILTER, GL_LINEAR)
    wrap_mode = GL_REPEAT if repeat else GL_CLAMP_TO_EDGE
    glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_WRAP_S, wrap_mode)
    glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_WRAP_T, wrap_mode)
    glBindTexture(GL_TEXTURE_2D, 0)
    return texture_id


class SceneRenderer:
    """Uploads scene-graph geometry/textures on first use and draws the scene."""

    def __init__(self, program: int):
        self.program = program
        self.meshes: Dict[int, GpuMesh] = {}
        self.textures: Dict[int, int] = {}
        self.locations = {
            name: glGetUniformLocation(program, name)
            for name in ("model", "view", "projection", "normalMatrix", "baseColor", "opacity",
                         "hasTexture", "diffuseTexture", "viewPos", "lightDir", "lightColor",
                         "ambientColor", "fogColor", "fogDensity")
        }

    def _gpu_mesh(self, geometry: Geometry) -> GpuMesh:
        key = id(geometry)
        if key not in self.meshes:
            self.meshes[key] = upload_geometry(geometry)
        return self.meshes[key]

    def _texture_id(self, texture: Texture) -> int:
        key = id(texture)
        if key not in self.textures:
            self.textures[key] = upload_texture(texture)
        return self.textures[key]

    def _set_lights(self, scene: Scene) -> None:
        loc = self.locations
        ambient = np.zeros(3)
        sun_dir = np.array([0.0, -1.0, 0.0])
        sun_color = np.zeros(3)
        for light in scene.lights:
            if isinstance(light, AmbientLight):
                ambient += np.asarray(light.color) * light.intensity
            elif isinstance(light, DirectionalLight):
                position = np.asarray(light.position, dtype=np.float64)
                sun_dir = -position / (np.linalg.norm(position) + 1e-9)
                sun_color = np.asarray(light.color) * light.intensity

        glUniform3f(loc["ambientColor"], *ambient)
        glUniform3f(loc["lightDir"], *sun_dir)
        glUniform3f(loc["lightColor"], *sun_color)

        if scene.fog is not None:
            glUniform3f(loc["fogColor"], *scene.fog.color)
            glUniform1f(loc["fogDensity"], scene.fog.density)
        else:
            glUniform1f(loc["fogDensity"], 0.0)

    def _draw_mesh(self, mesh: Node) -> None:
        loc = self.locations
        world = mesh.world_matrix()
        normal_matrix = np.linalg.inv(world[:3, :3]).T

        glUniformMatrix4fv(loc["model"], 1, GL_TRUE, world.astype(np.float32))
        glUniformMatrix3fv(loc["normalMatrix"], 1, GL_TRUE, normal_matrix.astype(np.float32))

        material = mesh.material
        color = material.color if material else (1.0, 1.0, 1.0)
        glUniform3f(loc["baseColor"], *color)
        glUniform1f(loc["opacity"], material.opacity if material else 1.0)

        texture = material.textures.get("base_color") if material else None
        glUniform1i(loc["hasTexture"], GL_TRUE if texture is not None else GL_FALSE)
        if texture is not None:
            glActiveTexture(GL_TEXTURE0)
            glBindTexture(GL_TEXTURE_2D, self._texture_id(texture))

        gpu = self._gpu_mesh(mesh.geometry)
        glBindVertexArray(gpu.vao)
        glDrawElements(GL_TRIANGLES, gpu.count, GL_UNSIGNED_INT, ctypes.c_void_p(0))
        glBindVertexArray(0)

        if texture is not None:
            glBindTexture(GL_TEXTURE_2D, 0)

    def render(self, scene: Scene, camera: Camera) -> None:
        loc = self.locations
        glClearColor(*scene.background, 1.0)
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

        glUseProgram(self.program)
        glUniformMatrix4fv(loc["view"], 1, GL_FALSE, glm.value_ptr(camera.view_matrix()))
        glUniformMatrix4fv(loc["projection"], 1, GL_FALSE, glm.value_ptr(camera.projection_matrix()))
        glUniform3fv(loc["viewPos"], 1, glm.value_ptr(camera.position))
        glUniform1i(loc["diffuseTexture"], 0)
        self._set_lights(scene)

        opaque = []
        transparent = []
        for node in scene.iter_meshes():
            if not node.visible:
                continue
            if node.material is not None and node.material.transparent:
                transparent.append(node)
            else:
                opaque.append(node)

        for node in opaque:
            self._draw_mesh(node)

        if transparent:
            glEnable(GL_BLEND)
            glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)
            glDepthMask(GL_FALSE)
            for node in transparent:
                self._draw_mesh(node)
            glDepthMask(GL_TRUE)
            glDisable(GL_BLEND)

        glUseProgram(0)


# ################################################################################################
# Input
# ################################################################################################

def key_callback(window, key, scancode, action, mods):
    if key == glfw.KEY_ESCAPE and action == glfw.PRESS:
        glfw.set_window_should_close(window, True)
        return

    if action == glfw.PRESS:
        keys_state[key] = True
        if key in SUBJECT_KEYS:
            window_data = glfw.get_window_user_pointer(window)
            director: ParkDirector = window_data["director"]
            index = SUBJECT_KEYS.index(key)
            if index < len(director.park.subjects):
                director.travel_to(index)
    elif action == glfw.RELEASE:
        keys_state[key] = False


def mouse_callback(window, xpos, ypos):
    if mouse_data["first"]:
        mouse_data["x"] = xpos
        mouse_data["y"] = ypos
        mouse_data["first"] = False
    dx = xpos - mouse_data["x"]
    dy = mouse_data["y"] - ypos
    mouse_data["x"] = xpos
    mouse_data["y"] = ypos

    window_data = glfw.get_window_user_pointer(window)
    if not window_data:
        return
    director: ParkDirector = window_data["director"]
    if director.travel.is_active:
        return
    window_data["controls"].rotate(dx, dy)


def framebuffer_size_callback(window, width, height):
    global WINDOW_WIDTH, WINDOW_HEIGHT
    WINDOW_WIDTH = max(1, width)
    WINDOW_HEIGHT = max(1, height)
    glViewport(0, 0, WINDOW_WIDTH, WINDOW_HEIGHT)

    window_data = glfw.get_window_user_pointer(window)
    if window_data:
        window_data["camera"].aspect = WINDOW_WIDTH / float(WINDOW_HEIGHT)


def process_movement(camera: Camera, delta_time: float):
    speed = MOVE_SPEED * delta_time
    if keys_state.get(glfw.KEY_LEFT_SHIFT, False):
        speed *= RUN_MULTIPLIER

    forward = glm.normalize(camera.front)
    right = glm.normalize(glm.cross(forward, camera.world_up))
    move_direction = glm.vec3(0.0, 0.0, 0.0)

    if keys_state.get(glfw.KEY_W, False):
        move_direction += forward
    if keys_state.get(glfw.KEY_S, False):
        move_direction -= forward
    if keys_state.get(glfw.KEY_A, False):
        move_direction -= right
    if keys_state.get(glfw.KEY_D, False):
        move_direction += right
    if keys_state.get(glfw.KEY_SPACE, False):
        move_direction += camera.world_up
    if keys_state.get(glfw.KEY_LEFT_CONTROL, False):
        move_direction -= camera.world_up

    if glm.length(move_direction) > 0:
        camera.position += glm.normalize(move_direction) * speed


# ################################################################################################
# Main
# ################################################################################################

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Explore the dino park in 3D.")
    parser.add_argument("--assets-dir", default=ASSETS_DIR, help="Folder with models/ and textures/.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for prop scattering.")
    parser.add_argument("--tiles", type=int, default=DEFAULT_TILES_PER_AXIS, help="Ground tiles per axis.")
    parser.add_argument("--props", type=int, default=DEFAULT_PROP_COUNT, help="Decorative props to scatter.")
    parser.add_argument("--min-spacing", type=float, default=DEFAULT_MIN_SPACING,
                        help="Minimum distance between scattered props (m).")
    parser.add_argument("--headless", action="store_true", help="Build the park, print a summary and exit.")
    return parser


def create_camera() -> Camera:
    camera = Camera(FIELD_OF_VIEW, WINDOW_WIDTH / float(WINDOW_HEIGHT), NEAR_PLANE, FAR_PLANE)
    camera.position = glm.vec3(*CAMERA_START)
    return camera


def load_park(args) -> Park:
    catalog = default_catalog()
    loader = FileAssetLoader(args.assets_dir)
    scene = create_scene()
    rng = random.Random(args.seed)

    print_progress(0, "Loading assets...")
    park = asyncio.run(
        build_park(
            scene,
            catalog,
            loader,
            on_progress=print_progress,
            rng=rng,
            tiles_per_axis=args.tiles,
            prop_count=args.props,
            min_spacing=args.min_spacing,
        )
    )
    print("[info] Finalizing...")
    return park


def run_window(park: Park) -> None:
    if not glfw.init():
        raise SystemExit("Falha ao iniciar GLFW")

    glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, 3)
    glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, 3)
    glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
    glfw.window_hint(glfw.OPENGL_FORWARD_COMPAT, GL_TRUE)
    glfw.window_hint(glfw.SAMPLES, 4)

    window = glfw.create_window(WINDOW_WIDTH, WINDOW_HEIGHT, "Dino Park", None, None)
    if not window:
        glfw.terminate()
        raise SystemExit("Falha ao criar janela")

    glfw.make_context_current(window)
    glfw.swap_interval(1)

    camera = create_camera()
    panel = ConsoleInfoPanel()
    director = ParkDirector(park, camera, panel.on_subject_hover)
    controls = FlyControls(camera)

    glfw.set_window_user_pointer(window, {"camera": camera, "director": director, "controls": controls})
    glfw.set_key_callback(window, key_callback)
    glfw.set_cursor_pos_callback(window, mouse_callback)
    glfw.set_framebuffer_size_callback(window, framebuffer_size_callback)
    glfw.set_input_mode(window, glfw.CURSOR, glfw.CURSOR_DISABLED)

    width, height = glfw.get_framebuffer_size(window)
    framebuffer_size_callback(window, width, height)

    glEnable(GL_DEPTH_TEST)
    # tiles espelhados invertem o winding, entao nada de culling
    glDisable(GL_CULL_FACE)
    glEnable(GL_MULTISAMPLE)

    renderer = SceneRenderer(compile_shader_program("shaders/park_scene_vs.glsl", "shaders/park_scene_fs.glsl"))
    print_subject_list(park.catalog, len(SUBJECT_KEYS))

    last_time = glfw.get_time()
    while not glfw.window_should_close(window):
        current_time = glfw.get_time()
        delta_time = current_time - last_time
        last_time = current_time

        glfw.poll_events()
        if director.travel.is_active:
            director.update(delta_time)
            controls.sync_from_camera()
        else:
            process_movement(camera, delta_time)
            director.update(delta_time)

        renderer.render(park.scene, camera)
        glfw.swap_buffers(window)

    glfw.terminate()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    park = load_park(args)

    if args.headless:
        terrain = park.terrain
        print(f"[info] Scene nodes: {sum(1 for _ in park.scene.traverse())}")
        print(f"[info] Ground: {'fallback floor' if terrain.is_fallback else f'{len(terrain.tiles)} tiles'}"
              f" ({terrain.width:.1f} x {terrain.depth:.1f} m)")
        return 0

    run_window(park)
    return 0


if __name__ == "__main__":
    sys.exit(main())
