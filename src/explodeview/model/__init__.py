"""
The MODEL layer contains pure data structures describing a loaded asset.
It has NO knowledge of the GUI (Qt); PyVista is only used to convert
geometry for drawing and picking.
It deals with Scene Graphs, Geometry buffers, Materials and I/O.
"""
