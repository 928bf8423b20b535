from primitives import get_box_model
from scene_graph import Geometry, Material, Node, hex_to_rgb


def placeholder_dimensions(record):
    """(width, height, depth) of the proxy box; width follows the body length."""
    return record.length / 3.0, record.height, record.length


def create_placeholder(record):
    """
    Caixa no lugar de um modelo ausente ou que falhou ao carregar.

    Sempre o mesmo resultado para o mesmo registro: sem aleatoriedade e sem texturas.
    """
    width, height, depth = placeholder_dimensions(record)

    geometry = Geometry(*get_box_model(width, height, depth))
    material = Material(name=f"{record.name}_placeholder", color=hex_to_rgb(record.color))

    body = Node(f"{record.name}_placeholder", geometry, material)
    # pivo na base, para ficar apoiado em y = 0
    body.set_position(0.0, height / 2.0, 0.0)
    return body
