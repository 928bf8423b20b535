import math

import numpy as np

from geometry_utils import compute_vertices_normals

# Cada modelo retorna (vertices, faces, normals, uvs), pronto para scene_graph.Geometry.

_BOX_FACES = [
    # normal, eixo u, eixo v
    ([1, 0, 0], [0, 0, -1], [0, 1, 0]),
    ([-1, 0, 0], [0, 0, 1], [0, 1, 0]),
    ([0, 1, 0], [1, 0, 0], [0, 0, -1]),
    ([0, -1, 0], [1, 0, 0], [0, 0, 1]),
    ([0, 0, 1], [1, 0, 0], [0, 1, 0]),
    ([0, 0, -1], [-1, 0, 0], [0, 1, 0]),
]


def get_box_model(width=1.0, height=1.0, depth=1.0):
    """Caixa centrada na origem, 4 vertices por face para manter as normais planas."""
    half = np.array([width, height, depth], dtype=np.float32) * 0.5

    vertices = []
    normals = []
    uvs = []
    faces = []

    for normal, u_axis, v_axis in _BOX_FACES:
        normal = np.array(normal, dtype=np.float32)
        u_axis = np.array(u_axis, dtype=np.float32)
        v_axis = np.array(v_axis, dtype=np.float32)

        base = len(vertices)
        for su, sv in ((-1, -1), (1, -1), (1, 1), (-1, 1)):
            corner = (normal + su * u_axis + sv * v_axis) * half
            vertices.append(corner)
            normals.append(normal)
            uvs.append([(su + 1) * 0.5, (sv + 1) * 0.5])

        faces.append([base, base + 1, base + 2])
        faces.append([base, base + 2, base + 3])

    return (
        np.array(vertices, dtype=np.float32),
        np.array(faces, dtype=np.int32),
        np.array(normals, dtype=np.float32),
        np.array(uvs, dtype=np.float32),
    )


def get_plane_model(width=1.0, depth=1.0, uv_repeat=1.0):
    """Plano horizontal (XZ) em y = 0 com a normal para +Y."""
    hw = width * 0.5
    hd = depth * 0.5

    vertices = np.array([
        [-hw, 0.0, hd],
        [hw, 0.0, hd],
        [hw, 0.0, -hd],
        [-hw, 0.0, -hd],
    ], dtype=np.float32)
    faces = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int32)
    normals = np.tile(np.array([0.0, 1.0, 0.0], dtype=np.float32), (4, 1))
    uvs = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float32) * uv_repeat

    return vertices, faces, normals, uvs


def get_cylinder_model(radius=1.0, height=1.0, sectors=16):
    """Cilindro fechado centrado na origem, eixo Y."""
    half = height * 0.5
    vertices = []
    normals = []
    uvs = []
    faces = []

    # lateral
    for i in range(sectors + 1):
        angle = 2 * math.pi * i / sectors
        x, z = math.sin(angle), math.cos(angle)
        for y in (-half, half):
            vertices.append([x * radius, y, z * radius])
            normals.append([x, 0.0, z])
            uvs.append([i / sectors, 0.0 if y < 0 else 1.0])

    for i in range(sectors):
        k = i * 2
        faces.append([k, k + 2, k + 1])
        faces.append([k + 1, k + 2, k + 3])

    # tampas
    for y, ny in ((half, 1.0), (-half, -1.0)):
        center = len(vertices)
        vertices.append([0.0, y, 0.0])
        normals.append([0.0, ny, 0.0])
        uvs.append([0.5, 0.5])
        for i in range(sectors + 1):
            angle = 2 * math.pi * i / sectors
            x, z = math.sin(angle), math.cos(angle)
            vertices.append([x * radius, y, z * radius])
            normals.append([0.0, ny, 0.0])
            uvs.append([x * 0.5 + 0.5, z * 0.5 + 0.5])
        for i in range(sectors):
            a = center + 1 + i
            if ny > 0:
                faces.append([center, a, a + 1])
            else:
                faces.append([center, a + 1, a])

    return (
        np.array(vertices, dtype=np.float32),
        np.array(faces, dtype=np.int32),
        np.array(normals, dtype=np.float32),
        np.array(uvs, dtype=np.float32),
    )


def get_sphere_model(radius=1.0, sectors=32, stacks=16):
    sector_step = 2 * math.pi / sectors
    stack_step = math.pi / stacks

    sphere_vertices = []
    sphere_uvs = []

    for i in range(stacks + 1):
        stack_angle = math.pi / 2 - i * stack_step  # de pi/2 a -pi/2
        xz = math.cos(stack_angle)
        y = math.sin(stack_angle)

        for j in range(sectors + 1):
            sector_angle = j * sector_step  # de 0 a 2pi

            x = xz * math.sin(sector_angle)
            z = xz * math.cos(sector_angle)
            sphere_vertices.append([x, y, z])
            sphere_uvs.append([j / sectors, 1.0 - i / stacks])

    sphere_faces = []
    for i in range(stacks):
        k1 = i * (sectors + 1)
        k2 = k1 + sectors + 1

        for j in range(sectors):

            if i != 0:
                sphere_faces.append([k1, k2, k1 + 1])

            if i != (stacks - 1):
                sphere_faces.append([k1 + 1, k2, k2 + 1])

            k1 = k1 + 1
            k2 = k2 + 1

    unit = np.array(sphere_vertices, dtype=np.float32)

    return (
        unit * radius,
        np.array(sphere_faces, dtype=np.int32),
        unit.copy(),
        np.array(sphere_uvs, dtype=np.float32),
    )


def get_rock_model(radius=0.5, seed=7):
    """Esfera low-poly achatada e deformada, usada como pedra decorativa de reserva."""
    vertices, faces, _, uvs = get_sphere_model(radius, sectors=8, stacks=5)

    rng = np.random.default_rng(seed)
    jitter = rng.uniform(0.8, 1.15, size=(len(vertices), 1)).astype(np.float32)
    vertices = vertices * jitter
    vertices[:, 1] *= 0.6
    vertices[:, 1] -= vertices[:, 1].min()

    return vertices, faces, compute_vertices_normals(vertices, faces), uvs
