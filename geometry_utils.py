import math

import numpy as np


def _as_triangles(faces):
    faces = np.asarray(faces, dtype=np.int32)

    # Faces no formato [[[a], [b], [c]]] (estilo OBJ) viram [[a, b, c]]
    if faces.ndim == 3:
        faces = faces[..., 0]

    return faces.reshape(-1, 3)


def compute_bounding_box(vertices_pos, faces=None):
    """
    Alguns modelos contem vertices não utilizados pelas faces.
    Quando as faces são informadas, apenas os vértices usados entram no bbox.

    Cada bbox é um array com dois pontos:
        [ [xmin, ymin, zmin], [xmax, ymax, zmax] ]
    """
    vertices_pos = np.asarray(vertices_pos, dtype=np.float32).reshape(-1, 3)

    if faces is not None and len(faces) > 0:
        used_vertices = vertices_pos[_as_triangles(faces).ravel()]
    else:
        used_vertices = vertices_pos

    if len(used_vertices) == 0:
        raise ValueError("Cannot compute a bounding box without vertices")

    return np.array([used_vertices.min(axis=0), used_vertices.max(axis=0)], dtype=np.float32)


def union_bounding_boxes(bbox1, bbox2):
    """
    Calcula a união de dois bounding boxes 3D.

    Cada bbox é uma lista com dois pontos:
        [ [xmin, ymin, zmin], [xmax, ymax, zmax] ]
    """
    if bbox1 is None:
        return bbox2
    if bbox2 is None:
        return bbox1

    bbox1_min, bbox1_max = bbox1
    bbox2_min, bbox2_max = bbox2

    bbox_min = np.minimum(bbox1_min, bbox2_min)
    bbox_max = np.maximum(bbox1_max, bbox2_max)

    return np.array([bbox_min, bbox_max], dtype=np.float32)


def get_bounding_box_center(bbox):
    bbox_min, bbox_max = bbox
    return (np.asarray(bbox_min) + np.asarray(bbox_max)) / 2.0


def get_bounding_box_size(bbox):
    bbox_min, bbox_max = bbox
    return np.asarray(bbox_max) - np.asarray(bbox_min)


def compute_faces_normals(vertices_pos, faces):
    faces = _as_triangles(faces)

    # Extrai as posições dos 3 vértices de cada face
    p0 = vertices_pos[faces[:, 0]]
    p1 = vertices_pos[faces[:, 1]]
    p2 = vertices_pos[faces[:, 2]]

    face_normals = np.cross(p1 - p0, p2 - p0)

    norms = np.linalg.norm(face_normals, axis=1, keepdims=True)
    face_normals = face_normals / (norms + 1e-9)

    return face_normals.astype(np.float32)


def compute_vertices_normals(vertices_pos, faces):
    faces = _as_triangles(faces)
    face_normals = compute_faces_normals(vertices_pos, faces)

    vertices_normals = np.zeros_like(vertices_pos, dtype=np.float32)

    # Soma as normais de cada face nos vértices correspondentes
    np.add.at(vertices_normals, faces[:, 0], face_normals)
    np.add.at(vertices_normals, faces[:, 1], face_normals)
    np.add.at(vertices_normals, faces[:, 2], face_normals)

    norms = np.linalg.norm(vertices_normals, axis=1, keepdims=True)
    vertices_normals = vertices_normals / (norms + 1e-9)

    return vertices_normals.astype(np.float32)


def build_rotation_matrix(rotation):
    """Euler XYZ (radianos) -> matriz 3x3, mesma ordem usada pelo three.js."""
    rx, ry, rz = rotation
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)

    rot_x = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]], dtype=np.float64)
    rot_y = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]], dtype=np.float64)
    rot_z = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    return rot_x @ rot_y @ rot_z


def quaternion_to_matrix(quaternion):
    """glTF quaternion (x, y, z, w) -> matriz de rotação 3x3."""
    x, y, z, w = quaternion
    norm = math.sqrt(x * x + y * y + z * z + w * w)
    if norm == 0.0:
        return np.eye(3)
    x, y, z, w = x / norm, y / norm, z / norm, w / norm

    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ], dtype=np.float64)


def compose_matrix(position, rotation_matrix, scale):
    """Matriz 4x4 (row-major) equivalente a T * R * S."""
    matrix = np.eye(4)
    matrix[:3, :3] = np.asarray(rotation_matrix, dtype=np.float64) * np.asarray(scale, dtype=np.float64)
    matrix[:3, 3] = position
    return matrix


def transform_points(matrix, points):
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def transform_bounding_box(matrix, bbox):
    bbox_min, bbox_max = bbox
    corners = np.array([
        [x, y, z]
        for x in (bbox_min[0], bbox_max[0])
        for y in (bbox_min[1], bbox_max[1])
        for z in (bbox_min[2], bbox_max[2])
    ])
    return compute_bounding_box(transform_points(matrix, corners))


def ray_intersects_bounding_box(origin, direction, bbox):
    """Slab test. Retorna True se o raio (t >= 0) cruza o bbox."""
    bbox_min, bbox_max = bbox
    t_near = 0.0
    t_far = math.inf

    for axis in range(3):
        o = origin[axis]
        d = direction[axis]
        if abs(d) < 1e-12:
            if o < bbox_min[axis] or o > bbox_max[axis]:
                return False
            continue
        t1 = (bbox_min[axis] - o) / d
        t2 = (bbox_max[axis] - o) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_near = max(t_near, t1)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return False

    return True


def ray_triangles_intersect(origin, direction, triangles, epsilon=1e-9):
    """
    Möller–Trumbore vetorizado, sem culling (faces dos dois lados).

    triangles: array (N, 3, 3) com os vértices de cada triângulo em coordenadas de mundo.
    Retorna um array (N,) com a distância ao longo do raio, ou inf onde não há interseção.
    """
    triangles = np.asarray(triangles, dtype=np.float64)
    if len(triangles) == 0:
        return np.empty(0, dtype=np.float64)

    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)

    v0 = triangles[:, 0]
    edge1 = triangles[:, 1] - v0
    edge2 = triangles[:, 2] - v0

    pvec = np.cross(direction, edge2)
    det = np.einsum("ij,ij->i", edge1, pvec)
    valid = np.abs(det) > epsilon
    inv_det = np.zeros_like(det)
    inv_det[valid] = 1.0 / det[valid]

    tvec = origin - v0
    u = np.einsum("ij,ij->i", tvec, pvec) * inv_det
    qvec = np.cross(tvec, edge1)
    v = (qvec @ direction) * inv_det
    t = np.einsum("ij,ij->i", edge2, qvec) * inv_det

    hit = valid & (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t >= 0.0)
    return np.where(hit, t, np.inf)
