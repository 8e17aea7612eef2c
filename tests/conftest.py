"""
Test fixtures shared across all SolGuard tests.
"""

import pytest

from solguard.core.parser import RustParser


@pytest.fixture
def parser():
    return RustParser()


@pytest.fixture
def parse(parser):
    """Parse a Rust snippet into a SyntaxTree."""

    def _parse(code, path="lib.rs"):
        return parser.parse_text(code, path)

    return _parse


@pytest.fixture
def vulnerable_anchor_program():
    """Anchor program with known issues for testing."""
    return '''use anchor_lang::prelude::*;

#[program]
pub mod vault {
    use super::*;

    pub fn withdraw(ctx: Context<Withdraw>, amount: u64, shares: u64) -> Result<()> {
        let rate = amount / shares;
        msg!("rate {}", rate);
        Ok(())
    }

    pub fn raw_copy(data: &[u8]) {
        unsafe {
            let _ptr = data.as_ptr();
        }
    }
}

#[derive(Accounts)]
pub struct Withdraw<'info> {
    #[account(mut)]
    pub vault: AccountInfo<'info>,
    #[account(mut)]
    pub destination: AccountInfo<'info>,
    pub authority: UncheckedAccount<'info>,
}
'''


@pytest.fixture
def clean_anchor_program():
    """Anchor program without issues."""
    return '''use anchor_lang::prelude::*;

#[program]
pub mod counter {
    use super::*;

    fn bump_count(count: u64) -> Result<u64> {
        let step = 2;
        Ok(count / step)
    }
}

#[derive(Accounts)]
pub struct Increment<'info> {
    #[account(mut, seeds = [b"counter"], bump)]
    pub counter: Account<'info, Counter>,
    pub authority: Signer<'info>,
}
'''


@pytest.fixture
def end_to_end_program():
    return '''#[derive(Accounts)]
pub struct Ctx<'info> {
    pub authority: AccountInfo<'info>,
}

pub fn handler(ctx: Context<Ctx>) {
    let x = 1;
    let y = 0;
    let _ = x / y;
}
'''
