"""
Tests for AstNode constructors and syntactic accessors.
"""

from solguard.core.dsl.node import AstNode, NodeType, RefKind, parse_attribute

CODE = '''#[derive(Accounts)]
#[instruction(amount: u64)]
pub struct Deposit<'info> {
    #[account(mut, has_one = owner)]
    pub vault: Account<'info, Vault>,
    /// The payer.
    #[account(signer)]
    pub owner: AccountInfo<'info>,
}

pub enum Side {
    Bid,
    Ask,
}

pub(crate) unsafe fn deposit(ctx: Context<Deposit>, amount: u64) -> Result<()> {
    let total = amount * 2;
    Ok(())
}
'''


def _items(parse):
    ast = parse(CODE)
    items = {child.type: child for child in ast.root.named_children if child.type != "attribute_item"}
    return ast, items


def test_constructors_normalise_names(parse):
    ast, items = _items(parse)
    struct = AstNode.from_struct(items["struct_item"], ast.source)
    enum = AstNode.from_enum(items["enum_item"], ast.source)
    func = AstNode.from_function(items["function_item"], ast.source)

    assert (struct.node_type, struct.name) == (NodeType.STRUCT, "Deposit")
    assert (enum.node_type, enum.name) == (NodeType.ENUM, "Side")
    assert (func.node_type, func.name) == (NodeType.FUNCTION, "deposit")
    assert AstNode.from_file(ast).node_type is NodeType.FILE


def test_snippet_placeholders(parse):
    ast, items = _items(parse)
    func = AstNode.from_function(items["function_item"], ast.source)
    assert func.snippet() == "fn deposit(...)"
    assert AstNode.from_struct(items["struct_item"], ast.source).snippet() == "struct Deposit"
    assert AstNode.from_enum(items["enum_item"], ast.source).snippet() == "enum Side"
    assert AstNode.from_block(func.body(), ast.source).snippet() == "{ ... }"
    assert AstNode.other().snippet() == "..."


def test_other_node_has_no_span():
    node = AstNode.other()
    assert node.span() is None
    assert node.name_or_default() == "unnamed"
    assert node.kind is RefKind.OTHER


def test_struct_attributes_and_fields(parse):
    ast, items = _items(parse)
    struct = AstNode.from_struct(items["struct_item"], ast.source)

    assert [attr.name for attr in struct.attributes()] == ["derive", "instruction"]
    assert struct.attributes()[0].tokens == "Accounts"

    vault, owner = struct.fields()
    assert vault.name == "vault"
    assert vault.type_text == "Account<'info, Vault>"
    assert vault.account_attributes()[0].tokens == "mut, has_one = owner"
    assert owner.account_attributes()[0].tokens == "signer"


def test_function_surface(parse):
    ast, items = _items(parse)
    func = AstNode.from_function(items["function_item"], ast.source)

    assert func.visibility() == "pub(crate)"
    assert not func.is_public()
    assert func.is_unsafe_fn()
    assert func.parameters() == [("ctx", "Context<Deposit>"), ("amount", "u64")]
    assert func.return_type_text() == "Result<()>"
    assert func.body().type == "block"


def test_expression_nodes_compare_structurally(parse):
    first = parse("fn a() { let x = 1 + 2; }\n")
    second = parse("fn b() { let y = 1  +  2; }\n")

    def binary(ast):
        node = next(n for n in _descendants(ast.root) if n.type == "binary_expression")
        return AstNode.from_expression(node, ast.source)

    assert binary(first) == binary(second)
    assert hash(binary(first)) == hash(binary(second))


def test_parse_attribute_forms(parse):
    ast = parse('#[doc = "text"]\n#[inline]\nfn f() {}\n')
    doc, inline = [parse_attribute(c, ast.source) for c in ast.root.named_children if c.type == "attribute_item"]
    assert (doc.name, doc.tokens) == ("doc", '"text"')
    assert (inline.name, inline.tokens) == ("inline", "")
    assert inline.is_ident("inline")


def _descendants(node):
    yield node
    for child in node.children:
        yield from _descendants(child)
